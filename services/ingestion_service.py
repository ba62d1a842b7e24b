from sqlalchemy.orm import Session
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union
from pathlib import Path
import io
import logging
import zipfile

from config.settings import settings
from models.database import Image
from services.entity_store import EntityStore
from services.exceptions import NotFoundError, UploadError
from utils.file_handler import (
    build_stored_filename,
    ensure_project_dirs,
    get_original_images_dir,
    is_image_filename,
    safe_filename,
)

logger = logging.getLogger(__name__)

ZIP_CONTENT_TYPES = {"application/zip", "application/x-zip-compressed", "application/x-zip"}
GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "multipart/x-zip"}


@dataclass
class UploadedFile:
    """One file from an upload batch."""
    filename: str
    content_type: str
    data: bytes


@dataclass
class ZipPayload:
    filename: str
    data: bytes


@dataclass
class ImagePayload:
    filename: str
    data: bytes


@dataclass
class UnsupportedPayload:
    filename: str
    reason: str


Payload = Union[ZipPayload, ImagePayload, UnsupportedPayload]


@dataclass
class IngestResult:
    images: List[Image] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def registered_count(self) -> int:
        return len(self.images)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def classify_payload(upload: UploadedFile) -> Payload:
    """Resolve an uploaded file to the payload kind that handles it."""
    name = upload.filename or ""
    content_type = (upload.content_type or "").split(";")[0].strip().lower()

    if len(upload.data) > settings.MAX_UPLOAD_SIZE:
        return UnsupportedPayload(name, "file too large")
    if content_type in ZIP_CONTENT_TYPES:
        return ZipPayload(name, upload.data)
    if content_type in GENERIC_CONTENT_TYPES and name.lower().endswith(".zip"):
        return ZipPayload(name, upload.data)
    if content_type.startswith("image/"):
        return ImagePayload(name, upload.data)
    return UnsupportedPayload(name, f"unsupported content type '{content_type or 'unknown'}'")


class ImageIngestionService:
    """
    Service for storing uploaded images and registering them in the store.
    """

    @staticmethod
    def _store_image(
        db: Session,
        session_id: int,
        images_dir: Path,
        original_name: str,
        data: bytes,
    ) -> Image:
        file_name = build_stored_filename(original_name)
        file_path = images_dir / file_name
        # Exclusive create: a fresh name must never overwrite an earlier upload
        with open(file_path, "xb") as buffer:
            buffer.write(data)
        return EntityStore.save_image(
            db,
            session_id=session_id,
            original_name=original_name,
            file_name=file_name,
            file_path=str(file_path),
        )

    @classmethod
    def _ingest_zip(
        cls,
        db: Session,
        session_id: int,
        images_dir: Path,
        payload: ZipPayload,
        result: IngestResult,
    ) -> None:
        try:
            archive = zipfile.ZipFile(io.BytesIO(payload.data))
        except zipfile.BadZipFile as exc:
            logger.warning("Skipping unreadable zip %s: %s", payload.filename, exc)
            result.skipped.append(payload.filename)
            return

        with archive:
            for entry in archive.infolist():
                if entry.is_dir():
                    continue
                original_name = safe_filename(entry.filename)
                if not original_name or not is_image_filename(original_name):
                    continue
                try:
                    data = archive.read(entry)
                except (zipfile.BadZipFile, OSError, RuntimeError) as exc:
                    logger.warning(
                        "Skipping zip entry %s in %s: %s", entry.filename, payload.filename, exc
                    )
                    result.skipped.append(f"{payload.filename}:{entry.filename}")
                    continue
                result.images.append(
                    cls._store_image(db, session_id, images_dir, original_name, data)
                )

    @classmethod
    def ingest(cls, db: Session, session_id: int, files: Optional[Iterable[UploadedFile]]) -> IngestResult:
        """
        Store and register every image in an upload batch.

        Zip archives contribute each image entry; single images contribute
        themselves; anything else is skipped without failing the batch.

        Raises:
            UploadError: empty batch
            NotFoundError: unknown session
        """
        files = list(files or [])
        if not files:
            raise UploadError("No files uploaded")

        session = EntityStore.get_session(db, session_id)
        if not session:
            raise NotFoundError(f"Session {session_id} not found")

        ensure_project_dirs(session.product_number)
        images_dir = get_original_images_dir(session.product_number)
        result = IngestResult()

        for upload in files:
            payload = classify_payload(upload)
            if isinstance(payload, ZipPayload):
                cls._ingest_zip(db, session_id, images_dir, payload, result)
            elif isinstance(payload, ImagePayload):
                original_name = safe_filename(payload.filename) or "image"
                result.images.append(
                    cls._store_image(db, session_id, images_dir, original_name, payload.data)
                )
            else:
                logger.info("Skipping %s: %s", payload.filename, payload.reason)
                result.skipped.append(payload.filename)

        EntityStore.touch_session(db, session_id)
        logger.info(
            "Session %s upload: %d image(s) registered, %d skipped",
            session_id, result.registered_count, result.skipped_count,
        )
        return result
