from pydantic import Field
from datetime import datetime
from typing import List, Optional
from .base import CamelModel, CamelResponse


class BoundingBox(CamelModel):
    # Pixel space; geometry is checked by the annotation service
    x: float
    y: float
    width: float
    height: float


class AnnotationCreate(CamelModel):
    image_id: int
    session_id: int
    bounding_box: BoundingBox
    category: str
    subcategories: List[str] = Field(default_factory=list)


class AnnotationResponse(CamelResponse):
    id: int
    image_id: int
    session_id: int
    bounding_box: BoundingBox
    category: str
    subcategories: List[str]
    created_at: Optional[datetime]
