from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.database import get_db
from schemas import AnnotationCreate, AnnotationResponse
from services.annotation_service import AnnotationService
from services.exceptions import NotFoundError, ValidationError

router = APIRouter()


@router.post("", response_model=AnnotationResponse)
def create_annotation(
    annotation: AnnotationCreate,
    db: Session = Depends(get_db)
):
    """Create an annotation and refresh the image's labeled render"""
    try:
        return AnnotationService.annotate(
            db,
            image_id=annotation.image_id,
            session_id=annotation.session_id,
            bounding_box=annotation.bounding_box,
            category=annotation.category,
            subcategories=annotation.subcategories,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.delete("/{annotation_id}")
def delete_annotation(annotation_id: int, db: Session = Depends(get_db)):
    """Delete an annotation"""
    try:
        AnnotationService.delete_annotation(db, annotation_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

    return {"message": "Annotation deleted"}
