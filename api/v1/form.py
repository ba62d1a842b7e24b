from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Dict, List

from config.database import get_db
from schemas import FormSectionSave, FormFieldResponse
from services.exceptions import NotFoundError, ValidationError
from services.form_service import FormService

router = APIRouter()


@router.post("/{session_id}/form", response_model=List[FormFieldResponse])
def save_form_section(
    session_id: int,
    payload: FormSectionSave,
    db: Session = Depends(get_db)
):
    """Upsert every field of one form section"""
    try:
        return FormService.save_section(db, session_id, payload.section, payload.fields)
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


@router.get("/{session_id}/form", response_model=Dict[str, Dict[str, str]])
def get_form(session_id: int, db: Session = Depends(get_db)):
    """Get stored form values grouped by section"""
    return FormService.get_grouped(db, session_id)
