from datetime import datetime
from typing import Any, Dict, Optional
from .base import CamelModel, CamelResponse


class FormSectionSave(CamelModel):
    section: str
    fields: Dict[str, Any]


class FormFieldResponse(CamelResponse):
    id: int
    session_id: int
    section: str
    field_name: str
    field_value: str
    updated_at: Optional[datetime]
