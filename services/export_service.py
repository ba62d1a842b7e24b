from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Sequence
from datetime import datetime
from pathlib import Path
import csv
import io
import json
import logging
import zipfile

from models.database import Annotation, CollectionSession, FormField, Image
from services.entity_store import EntityStore
from services.exceptions import NotFoundError, PackagingError, RenderError
from services.form_service import FORM_SCHEMA
from services.label_renderer import LabelRenderer
from utils.file_handler import get_annotations_dir, get_form_dir, get_labeled_filename

logger = logging.getLogger(__name__)

FORM_CSV_HEADERS = ["Section", "Field", "Value", "Updated At"]


def _isoformat(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def build_annotations_json(annotations: Sequence[Annotation]) -> str:
    records = [
        {
            "imageId": annotation.image_id,
            "boundingBox": annotation.bounding_box,
            "category": annotation.category,
            "subcategories": annotation.subcategories,
            "createdAt": _isoformat(annotation.created_at),
        }
        for annotation in annotations
    ]
    return json.dumps(records, indent=2)


def build_form_csv(form_fields: Sequence[FormField]) -> str:
    """
    One row per (section, field) of the fixed form schema. Fields without a
    stored value get empty Value/Updated At cells.
    """
    existing = {(f.section, f.field_name): f for f in form_fields}

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(FORM_CSV_HEADERS)
    for section, field_names in FORM_SCHEMA:
        for field_name in field_names:
            field = existing.get((section, field_name))
            writer.writerow([
                section,
                field_name,
                field.field_value if field else "",
                _isoformat(field.updated_at) if field else "",
            ])
    return buffer.getvalue()


class ExportService:
    """
    Service for packaging a session into a downloadable zip archive.

    Archive layout:
        images/original/<fileName>
        images/labeled/<stem>_labeled.png
        annotations/annotations.json
        form/form.csv
    """

    @staticmethod
    def _labeled_bytes(image: Image, annotations: List[Annotation]) -> Optional[bytes]:
        """Stored composite if readable, else an on-demand render when the image has annotations."""
        if image.labeled_path:
            try:
                return Path(image.labeled_path).read_bytes()
            except OSError:
                logger.info("Labeled image %s missing, re-rendering", image.labeled_path)

        if not annotations:
            return None
        return LabelRenderer.render(Path(image.file_path).read_bytes(), annotations)

    @classmethod
    def _add_image_entries(
        cls,
        archive: zipfile.ZipFile,
        image: Image,
        annotations: List[Annotation],
    ) -> None:
        try:
            original = Path(image.file_path).read_bytes()
        except OSError as exc:
            logger.error("Skipping image %s in export, original unreadable: %s", image.file_name, exc)
            return
        archive.writestr(f"images/original/{image.file_name}", original)

        try:
            labeled = cls._labeled_bytes(image, annotations)
        except (RenderError, OSError) as exc:
            logger.error("Skipping labeled image for %s in export: %s", image.file_name, exc)
            return
        if labeled is not None:
            archive.writestr(f"images/labeled/{get_labeled_filename(image.file_name)}", labeled)

    @staticmethod
    def _write_project_copy(path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write %s: %s", path, exc)

    @classmethod
    def export_session(cls, db: Session, session_id: int) -> bytes:
        """
        Build the export archive for a session.

        Images are best-effort: an unreadable original or a failed render
        drops that image's entries and the export continues.

        Raises:
            NotFoundError: unknown session
            PackagingError: the archive itself cannot be assembled
        """
        session: Optional[CollectionSession] = EntityStore.get_session(db, session_id)
        if not session:
            raise NotFoundError(f"Session {session_id} not found")

        images = EntityStore.list_session_images(db, session_id)
        annotations = EntityStore.list_session_annotations(db, session_id)
        by_image: Dict[int, List[Annotation]] = {}
        for annotation in annotations:
            by_image.setdefault(annotation.image_id, []).append(annotation)

        annotations_json = build_annotations_json(annotations)
        form_csv = build_form_csv(EntityStore.list_form_fields(db, session_id))

        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
                for image in images:
                    cls._add_image_entries(archive, image, by_image.get(image.id, []))
                archive.writestr("annotations/annotations.json", annotations_json)
                archive.writestr("form/form.csv", form_csv)
        except (zipfile.BadZipFile, ValueError, OSError) as exc:
            raise PackagingError(f"Failed to assemble export for session {session_id}: {exc}") from exc

        cls._write_project_copy(get_annotations_dir(session.product_number) / "annotations.json", annotations_json)
        cls._write_project_copy(get_form_dir(session.product_number) / "form.csv", form_csv)

        logger.info(
            "Exported session %s: %d image(s), %d annotation(s)",
            session_id, len(images), len(annotations),
        )
        return buffer.getvalue()

    @staticmethod
    def export_filename(session: CollectionSession) -> str:
        return f"project-{session.product_number}.zip"
