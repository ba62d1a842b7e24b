from sqlalchemy.orm import Session
import logging

from models.database import CollectionSession
from schemas import SessionProgress, ImageFlowProgress, FormFlowProgress
from services.entity_store import EntityStore
from services.exceptions import NotFoundError, ValidationError
from utils.file_handler import ensure_project_dirs, is_safe_path_segment

logger = logging.getLogger(__name__)


class SessionService:
    """
    Service for session creation and progress reporting.
    """

    @staticmethod
    def create_or_get(db: Session, product_number: str) -> CollectionSession:
        """Return the session for a product number, creating it and its directories once."""
        if not product_number or not product_number.strip():
            raise ValidationError("Product number is required")
        if not is_safe_path_segment(product_number):
            raise ValidationError(f"Invalid product number '{product_number}'")

        existing = EntityStore.get_session_by_product_number(db, product_number)
        if existing:
            return existing

        session = EntityStore.create_session(db, product_number)
        ensure_project_dirs(session.product_number)
        logger.info("Created session %s for product %s", session.id, session.product_number)
        return session

    @staticmethod
    def get_progress(db: Session, session_id: int) -> SessionProgress:
        if not EntityStore.get_session(db, session_id):
            raise NotFoundError(f"Session {session_id} not found")

        images = EntityStore.list_session_images(db, session_id)
        annotations = EntityStore.list_session_annotations(db, session_id)
        sections = {field.section for field in EntityStore.list_form_fields(db, session_id)}

        return SessionProgress(
            image_flow=ImageFlowProgress(
                upload_count=len(images),
                labeled_count=sum(1 for image in images if image.is_labeled),
                annotation_count=len(annotations),
            ),
            form_flow=FormFlowProgress(
                product_info_complete="product_info" in sections,
                auth1_complete="auth1" in sections,
                auth2_complete="auth2" in sections,
                regional_complete="regional" in sections,
                feedback_complete="feedback" in sections,
            ),
        )
