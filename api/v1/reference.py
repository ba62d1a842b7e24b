from fastapi import APIRouter, HTTPException, status
from typing import Dict, List
import logging

from schemas import CategoryResponse
from services.reference_service import ReferenceDataService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories():
    """Category taxonomy from the reference CSV"""
    try:
        return ReferenceDataService.load_categories()
    except OSError as e:
        logger.error("Error loading categories: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load categories"
        )


@router.get("/warehouses", response_model=List[Dict[str, str]])
def list_warehouses():
    """Warehouse reference rows"""
    try:
        return ReferenceDataService.load_warehouses()
    except OSError as e:
        logger.error("Error loading warehouses: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load warehouses"
        )
