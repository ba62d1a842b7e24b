from datetime import datetime
from typing import Optional
from .base import CamelResponse


class ImageResponse(CamelResponse):
    id: int
    session_id: int
    original_name: str
    file_name: str
    file_path: str
    labeled_path: Optional[str] = None
    annotation_count: int = 0
    is_labeled: bool = False
    uploaded_at: Optional[datetime]
