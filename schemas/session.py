from pydantic import Field
from datetime import datetime
from typing import Optional
from models.database.session import SessionStatus
from .base import CamelModel, CamelResponse


class SessionCreate(CamelModel):
    # Used as a directory name, so no path separators
    product_number: str = Field(..., min_length=1, max_length=255, pattern=r"^[^/\\]+$")


class SessionResponse(CamelResponse):
    id: int
    product_number: str
    status: SessionStatus
    created_at: Optional[datetime]
    last_saved: Optional[datetime]


# Progress
class ImageFlowProgress(CamelModel):
    upload_count: int = 0
    labeled_count: int = 0
    annotation_count: int = 0


class FormFlowProgress(CamelModel):
    product_info_complete: bool = False
    auth1_complete: bool = False
    auth2_complete: bool = False
    regional_complete: bool = False
    feedback_complete: bool = False


class SessionProgress(CamelModel):
    image_flow: ImageFlowProgress
    form_flow: FormFlowProgress
