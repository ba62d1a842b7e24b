from sqlalchemy.orm import Session
from typing import Any, List, Optional, Sequence
from pathlib import Path
import logging
import threading
import weakref

from models.database import Annotation, Image
from services.entity_store import EntityStore, normalize_bounding_box, normalize_labels
from services.exceptions import NotFoundError, RenderError, ValidationError
from services.label_renderer import LabelRenderer
from utils.file_handler import get_labeled_path

logger = logging.getLogger(__name__)


class AnnotationService:
    """
    Service for the annotation lifecycle of an image.

    Every write re-renders the labeled composite from the full current
    annotation set and then recounts the image's annotations. The
    write/render/recount sequence is serialized per image.
    """

    # Entries disappear once no caller holds the lock
    _image_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
    _locks_guard = threading.Lock()

    @classmethod
    def _image_lock(cls, image_id: int) -> threading.Lock:
        with cls._locks_guard:
            lock = cls._image_locks.get(image_id)
            if lock is None:
                lock = threading.Lock()
                cls._image_locks[image_id] = lock
            return lock

    @staticmethod
    def _require_image(db: Session, image_id: int) -> Image:
        image = EntityStore.get_image(db, image_id)
        if not image:
            raise NotFoundError(f"Image {image_id} not found")
        return image

    @classmethod
    def _refresh_labeled_image(cls, db: Session, image: Image) -> Image:
        """
        Re-render the composite for the image's current annotations and
        store the outcome. The count is recounted at commit time whether or
        not the render succeeds; a failed or empty render clears labeled_path.
        """
        labeled_path: Optional[str] = None
        try:
            annotations = EntityStore.list_image_annotations(db, image.id)
            session = EntityStore.get_session(db, image.session_id)

            if session is None:
                logger.warning("Image %s has no session; skipping labeled render", image.id)
            else:
                output_path = get_labeled_path(session.product_number, image.file_name)
                if annotations:
                    try:
                        LabelRenderer.render_to_file(image.file_path, annotations, output_path)
                        labeled_path = str(output_path)
                    except (RenderError, OSError) as exc:
                        logger.warning(
                            "Failed to generate labeled image for %s, annotations kept: %s",
                            image.file_name, exc,
                        )
                if labeled_path is None:
                    cls._discard_stale(output_path)
        finally:
            # The row is already committed, so the count must follow it
            image = EntityStore.update_image_labeled(db, image.id, labeled_path)
        return image

    @staticmethod
    def _discard_stale(path: Path) -> None:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove stale labeled image %s: %s", path, exc)

    @classmethod
    def annotate(
        cls,
        db: Session,
        image_id: int,
        session_id: int,
        bounding_box: Any,
        category: str,
        subcategories: Sequence[str],
    ) -> Annotation:
        """
        Validate and save an annotation, then refresh the image's composite.

        Args:
            db: Database session
            image_id: Target image
            session_id: Session the image belongs to
            bounding_box: x/y/width/height in image pixels
            category: Category label
            subcategories: One or more subcategory labels

        Returns:
            The persisted annotation

        Raises:
            ValidationError: bad geometry, empty labels, or session mismatch
            NotFoundError: unknown image
        """
        box = normalize_bounding_box(bounding_box)
        labels = normalize_labels(category, subcategories)

        image = cls._require_image(db, image_id)
        if image.session_id != session_id:
            raise ValidationError(
                f"Image {image_id} does not belong to session {session_id}"
            )

        with cls._image_lock(image_id):
            annotation = EntityStore.save_annotation(
                db, image_id, session_id, box, category.strip(), labels
            )
            cls._refresh_labeled_image(db, image)

        EntityStore.touch_session(db, session_id)
        return annotation

    @classmethod
    def delete_annotation(cls, db: Session, annotation_id: int) -> None:
        """
        Delete an annotation and bring the image's composite back in line
        with the remaining annotations.

        Raises:
            NotFoundError: unknown annotation
        """
        annotation = EntityStore.get_annotation(db, annotation_id)
        if not annotation:
            raise NotFoundError(f"Annotation {annotation_id} not found")

        image_id = annotation.image_id
        session_id = annotation.session_id

        with cls._image_lock(image_id):
            EntityStore.delete_annotation(db, annotation_id)
            image = EntityStore.get_image(db, image_id)
            if image:
                cls._refresh_labeled_image(db, image)

        EntityStore.touch_session(db, session_id)

    @classmethod
    def list_image_annotations(cls, db: Session, image_id: int) -> List[Annotation]:
        cls._require_image(db, image_id)
        return EntityStore.list_image_annotations(db, image_id)
