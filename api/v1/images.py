from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from typing import List
from pathlib import Path

from config.database import get_db
from schemas import AnnotationResponse
from services.annotation_service import AnnotationService
from services.entity_store import EntityStore
from services.exceptions import NotFoundError

router = APIRouter()


@router.get("/{image_id}/file")
def get_image_file(image_id: int, db: Session = Depends(get_db)):
    """Serve the original image bytes"""
    image = EntityStore.get_image(db, image_id)
    if not image:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Image {image_id} not found"
        )

    if not Path(image.file_path).is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image file not found"
        )

    return FileResponse(image.file_path)


@router.get("/{image_id}/labeled")
def get_labeled_file(image_id: int, db: Session = Depends(get_db)):
    """Serve the rendered labeled image"""
    image = EntityStore.get_image(db, image_id)
    if not image:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Image {image_id} not found"
        )

    if not image.labeled_path or not Path(image.labeled_path).is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Labeled image not found"
        )

    return FileResponse(image.labeled_path, media_type="image/png")


@router.get("/{image_id}/annotations", response_model=List[AnnotationResponse])
def list_annotations_for_image(image_id: int, db: Session = Depends(get_db)):
    """Get all annotations for an image"""
    try:
        return AnnotationService.list_image_annotations(db, image_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
