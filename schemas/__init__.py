from .session import (
    SessionCreate,
    SessionResponse,
    SessionProgress,
    ImageFlowProgress,
    FormFlowProgress,
)
from .image import ImageResponse
from .annotation import (
    BoundingBox,
    AnnotationCreate,
    AnnotationResponse,
)
from .form import (
    FormSectionSave,
    FormFieldResponse,
)
from .reference import CategoryResponse

__all__ = [
    "SessionCreate",
    "SessionResponse",
    "SessionProgress",
    "ImageFlowProgress",
    "FormFlowProgress",
    "ImageResponse",
    "BoundingBox",
    "AnnotationCreate",
    "AnnotationResponse",
    "FormSectionSave",
    "FormFieldResponse",
    "CategoryResponse",
]
