from sqlalchemy.orm import Session
from typing import Any, Dict, List, Mapping, Tuple

from models.database import FormField
from services.entity_store import EntityStore
from services.exceptions import NotFoundError, ValidationError

# Fixed export schema: every section with the fields written to form.csv
FORM_SCHEMA: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("product_info", ("date", "orderNumber", "warehouse")),
    ("auth1", ("damagePresent", "damageDetails", "imageCount")),
    ("auth2", ("packagingCondition", "sealIntact", "additionalNotes")),
    ("regional", ("region", "shippingMethod", "deliveryDate")),
    ("feedback", ("overallRating", "comments", "wouldRecommend")),
)

FORM_SECTIONS = tuple(section for section, _ in FORM_SCHEMA)


def stringify_field_value(value: Any) -> str:
    """Form values are stored as text whatever their logical type."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FormService:
    """
    Service for the per-session multi-section form.
    """

    @staticmethod
    def save_section(
        db: Session,
        session_id: int,
        section: str,
        fields: Mapping[str, Any],
    ) -> List[FormField]:
        """
        Upsert every field of one form section.

        Raises:
            NotFoundError: unknown session
            ValidationError: unknown section or blank field name
        """
        if section not in FORM_SECTIONS:
            raise ValidationError(
                f"Unknown form section '{section}', expected one of {', '.join(FORM_SECTIONS)}"
            )
        if not EntityStore.get_session(db, session_id):
            raise NotFoundError(f"Session {session_id} not found")

        saved = []
        for field_name, value in fields.items():
            if not field_name:
                raise ValidationError("Form field name is required")
            saved.append(
                EntityStore.upsert_form_field(
                    db, session_id, section, field_name, stringify_field_value(value)
                )
            )

        EntityStore.touch_session(db, session_id)
        return saved

    @staticmethod
    def get_grouped(db: Session, session_id: int) -> Dict[str, Dict[str, str]]:
        """Return stored values as {section: {field: value}}."""
        grouped: Dict[str, Dict[str, str]] = {}
        for field in EntityStore.list_form_fields(db, session_id):
            grouped.setdefault(field.section, {})[field.field_name] = field.field_value
        return grouped
