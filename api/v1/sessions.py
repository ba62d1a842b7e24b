from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session
from typing import List, Optional

from config.database import get_db
from schemas import SessionCreate, SessionResponse, SessionProgress, ImageResponse
from services.entity_store import EntityStore
from services.exceptions import NotFoundError, PackagingError, UploadError, ValidationError
from services.export_service import ExportService
from services.ingestion_service import ImageIngestionService, UploadedFile
from services.session_service import SessionService

router = APIRouter()


@router.post("", response_model=SessionResponse)
def create_session(session_data: SessionCreate, db: Session = Depends(get_db)):
    """Create a session, or return the existing one for this product number"""
    try:
        return SessionService.create_or_get(db, session_data.product_number)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("", response_model=List[SessionResponse])
def list_sessions(db: Session = Depends(get_db)):
    """List all sessions"""
    return EntityStore.list_sessions(db)


@router.get("/{product_number}", response_model=SessionResponse)
def get_session(product_number: str, db: Session = Depends(get_db)):
    """Look up a session by product number"""
    session = EntityStore.get_session_by_product_number(db, product_number)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
    return session


@router.get("/{session_id}/progress", response_model=SessionProgress)
def get_progress(session_id: int, db: Session = Depends(get_db)):
    """Aggregate image and form progress for a session"""
    try:
        return SessionService.get_progress(db, session_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.post("/{session_id}/images", response_model=List[ImageResponse])
async def upload_images(
    session_id: int,
    response: Response,
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db)
):
    """Upload images and/or zip archives of images to a session"""
    files = []
    for upload in images or []:
        files.append(UploadedFile(
            filename=upload.filename or "",
            content_type=upload.content_type or "",
            data=await upload.read(),
        ))

    try:
        result = ImageIngestionService.ingest(db, session_id, files)
    except UploadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

    response.headers["X-Registered-Count"] = str(result.registered_count)
    response.headers["X-Skipped-Count"] = str(result.skipped_count)
    return result.images


@router.get("/{session_id}/images", response_model=List[ImageResponse])
def list_images(session_id: int, db: Session = Depends(get_db)):
    """List images for a session"""
    return EntityStore.list_session_images(db, session_id)


@router.get("/{session_id}/export")
def export_session(session_id: int, db: Session = Depends(get_db)):
    """Download the session as a zip archive"""
    try:
        archive = ExportService.export_session(db, session_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except PackagingError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to export session: {str(e)}"
        )

    session = EntityStore.get_session(db, session_id)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{ExportService.export_filename(session)}"'
        },
    )
