from .session import CollectionSession, SessionStatus
from .image import Image
from .annotation import Annotation
from .form_field import FormField

__all__ = [
    "CollectionSession",
    "SessionStatus",
    "Image",
    "Annotation",
    "FormField",
]
