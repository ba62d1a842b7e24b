from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Any, Dict, List, Mapping, Optional, Sequence
import math
import threading

from config.database import utcnow
from models.database import CollectionSession, Image, Annotation, FormField, SessionStatus
from services.exceptions import ValidationError

BOX_KEYS = ("x", "y", "width", "height")


def normalize_bounding_box(bounding_box: Any) -> Dict[str, float]:
    """
    Coerce a bounding box (mapping or object with x/y/width/height) into a
    plain dict of floats and check its geometry.

    Raises:
        ValidationError: missing/non-numeric/non-finite values, negative
            origin, or non-positive size
    """
    if bounding_box is None:
        raise ValidationError("Bounding box is required")

    if hasattr(bounding_box, "model_dump"):
        bounding_box = bounding_box.model_dump()

    box: Dict[str, float] = {}
    for key in BOX_KEYS:
        if isinstance(bounding_box, Mapping):
            value = bounding_box.get(key)
        else:
            value = getattr(bounding_box, key, None)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"Bounding box '{key}' must be a number")
        if not math.isfinite(value):
            raise ValidationError(f"Bounding box '{key}' must be finite")
        box[key] = float(value)

    if box["x"] < 0 or box["y"] < 0:
        raise ValidationError("Bounding box origin must be non-negative")
    if box["width"] <= 0 or box["height"] <= 0:
        raise ValidationError("Bounding box width and height must be positive")

    return box


def normalize_labels(category: Any, subcategories: Any) -> List[str]:
    """Check category and subcategories, returning the subcategories as a list."""
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("Category is required")
    if isinstance(subcategories, str) or not isinstance(subcategories, Sequence):
        raise ValidationError("Subcategories must be a list of strings")
    labels = list(subcategories)
    if not labels:
        raise ValidationError("At least one subcategory is required")
    for label in labels:
        if not isinstance(label, str) or not label.strip():
            raise ValidationError("Subcategories must be non-empty strings")
    return labels


class EntityStore:
    """
    Single source of truth for sessions, images, annotations and form fields.

    Every operation runs under one store-wide lock and commits before the
    lock is released, so callers never observe a partial write. Queries
    return rows in insertion (id) order.
    """

    _lock = threading.RLock()

    # Sessions

    @classmethod
    def create_session(cls, db: Session, product_number: str) -> CollectionSession:
        """Return the session for product_number, creating it if needed."""
        with cls._lock:
            existing = cls.get_session_by_product_number(db, product_number)
            if existing:
                return existing

            now = utcnow()
            session = CollectionSession(
                product_number=product_number,
                status=SessionStatus.ACTIVE,
                created_at=now,
                last_saved=now,
            )
            db.add(session)
            db.commit()
            db.refresh(session)
            return session

    @classmethod
    def get_session(cls, db: Session, session_id: int) -> Optional[CollectionSession]:
        with cls._lock:
            return db.query(CollectionSession).filter(CollectionSession.id == session_id).first()

    @classmethod
    def get_session_by_product_number(cls, db: Session, product_number: str) -> Optional[CollectionSession]:
        with cls._lock:
            return db.query(CollectionSession).filter(
                CollectionSession.product_number == product_number
            ).first()

    @classmethod
    def list_sessions(cls, db: Session) -> List[CollectionSession]:
        with cls._lock:
            return db.query(CollectionSession).order_by(CollectionSession.id).all()

    @classmethod
    def touch_session(cls, db: Session, session_id: int) -> None:
        """Bump last_saved; unknown ids are ignored."""
        with cls._lock:
            session = db.query(CollectionSession).filter(CollectionSession.id == session_id).first()
            if not session:
                return
            session.last_saved = utcnow()
            db.commit()

    # Images

    @classmethod
    def save_image(
        cls,
        db: Session,
        session_id: int,
        original_name: str,
        file_name: str,
        file_path: str,
    ) -> Image:
        with cls._lock:
            image = Image(
                session_id=session_id,
                original_name=original_name,
                file_name=file_name,
                file_path=file_path,
                labeled_path=None,
                annotation_count=0,
                is_labeled=False,
                uploaded_at=utcnow(),
            )
            db.add(image)
            db.commit()
            db.refresh(image)
            return image

    @classmethod
    def get_image(cls, db: Session, image_id: int) -> Optional[Image]:
        with cls._lock:
            return db.query(Image).filter(Image.id == image_id).first()

    @classmethod
    def list_session_images(cls, db: Session, session_id: int) -> List[Image]:
        with cls._lock:
            return db.query(Image).filter(Image.session_id == session_id).order_by(Image.id).all()

    @classmethod
    def update_image_labeled(
        cls,
        db: Session,
        image_id: int,
        labeled_path: Optional[str],
        annotation_count: Optional[int] = None,
    ) -> Optional[Image]:
        """
        Set the composite path and annotation count of an image.

        When annotation_count is omitted it is recounted from the live
        annotation rows inside the lock. Unknown ids are ignored.
        """
        with cls._lock:
            image = db.query(Image).filter(Image.id == image_id).first()
            if not image:
                return None
            if annotation_count is None:
                annotation_count = cls.count_image_annotations(db, image_id)
            image.labeled_path = labeled_path
            image.annotation_count = annotation_count
            image.is_labeled = annotation_count > 0
            db.commit()
            db.refresh(image)
            return image

    # Annotations

    @classmethod
    def save_annotation(
        cls,
        db: Session,
        image_id: int,
        session_id: int,
        bounding_box: Any,
        category: str,
        subcategories: Sequence[str],
    ) -> Annotation:
        box = normalize_bounding_box(bounding_box)
        labels = normalize_labels(category, subcategories)

        with cls._lock:
            annotation = Annotation(
                image_id=image_id,
                session_id=session_id,
                bounding_box=box,
                category=category,
                subcategories=labels,
                created_at=utcnow(),
            )
            db.add(annotation)
            db.commit()
            db.refresh(annotation)
            return annotation

    @classmethod
    def get_annotation(cls, db: Session, annotation_id: int) -> Optional[Annotation]:
        with cls._lock:
            return db.query(Annotation).filter(Annotation.id == annotation_id).first()

    @classmethod
    def delete_annotation(cls, db: Session, annotation_id: int) -> None:
        """Remove an annotation; missing ids are ignored."""
        with cls._lock:
            db.query(Annotation).filter(Annotation.id == annotation_id).delete()
            db.commit()

    @classmethod
    def list_image_annotations(cls, db: Session, image_id: int) -> List[Annotation]:
        with cls._lock:
            return db.query(Annotation).filter(
                Annotation.image_id == image_id
            ).order_by(Annotation.id).all()

    @classmethod
    def list_session_annotations(cls, db: Session, session_id: int) -> List[Annotation]:
        with cls._lock:
            return db.query(Annotation).filter(
                Annotation.session_id == session_id
            ).order_by(Annotation.id).all()

    @classmethod
    def count_image_annotations(cls, db: Session, image_id: int) -> int:
        with cls._lock:
            return db.query(func.count(Annotation.id)).filter(
                Annotation.image_id == image_id
            ).scalar() or 0

    # Form fields

    @classmethod
    def upsert_form_field(
        cls,
        db: Session,
        session_id: int,
        section: str,
        field_name: str,
        field_value: str,
    ) -> FormField:
        """Insert a form field, or overwrite the value of the matching triple."""
        with cls._lock:
            field = db.query(FormField).filter(
                FormField.session_id == session_id,
                FormField.section == section,
                FormField.field_name == field_name,
            ).first()

            if field:
                field.field_value = field_value
                field.updated_at = utcnow()
            else:
                field = FormField(
                    session_id=session_id,
                    section=section,
                    field_name=field_name,
                    field_value=field_value,
                    updated_at=utcnow(),
                )
                db.add(field)

            db.commit()
            db.refresh(field)
            return field

    @classmethod
    def list_form_fields(cls, db: Session, session_id: int) -> List[FormField]:
        with cls._lock:
            return db.query(FormField).filter(
                FormField.session_id == session_id
            ).order_by(FormField.id).all()

    @classmethod
    def list_form_section(cls, db: Session, session_id: int, section: str) -> List[FormField]:
        with cls._lock:
            return db.query(FormField).filter(
                FormField.session_id == session_id,
                FormField.section == section,
            ).order_by(FormField.id).all()
