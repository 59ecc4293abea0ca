"""Attachment service - case files and inbound email files on local storage."""

import logging
import os
import uuid
from typing import BinaryIO

from sqlalchemy.orm import Session

from caseboard.core.config import settings
from caseboard.core.exceptions import BadRequestError
from caseboard.db.models import CaseAttachment
from caseboard.services import case_service

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_BYTES = 25 * 1024 * 1024  # 25 MB
CHUNK_SIZE = 8192

CASE_PREFIX = "cases"
EMAIL_PREFIX = "emails"


class FileTooLargeError(BadRequestError):
    """Upload exceeded MAX_FILE_SIZE_BYTES while streaming to storage."""

    @classmethod
    def default_message(cls) -> str:
        max_mb = MAX_FILE_SIZE_BYTES / (1024 * 1024)
        return f"File size exceeds {max_mb:.0f} MB limit"


# =============================================================================
# Storage Backend
# =============================================================================

def _get_local_storage_path() -> str:
    """Get local storage directory path."""
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def build_storage_key(prefix: str, filename: str) -> str:
    """Unique key under a prefix, keeping the original extension."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    name = uuid.uuid4().hex
    return f"{prefix}/{name}.{ext}" if ext else f"{prefix}/{name}"


def store_file(
    storage_key: str,
    file: BinaryIO,
    max_size: int | None = None,
) -> tuple[str, int]:
    """
    Stream a file under the storage root.

    The size is counted as chunks are written, so a client-declared length
    is never trusted. A file that passes max_size (default
    MAX_FILE_SIZE_BYTES) is removed again.

    Returns:
        (forward-slash blob path, size in bytes)

    Raises:
        FileTooLargeError: more than max_size bytes were read
    """
    if max_size is None:
        max_size = MAX_FILE_SIZE_BYTES
    path = os.path.join(_get_local_storage_path(), storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)

    size = 0
    with open(path, "wb") as f:
        file.seek(0)
        for chunk in iter(lambda: file.read(CHUNK_SIZE), b""):
            size += len(chunk)
            if size > max_size:
                break
            f.write(chunk)

    if size > max_size:
        os.remove(path)
        raise FileTooLargeError()
    return path.replace("\\", "/"), size


def delete_stored_file(blob_path: str) -> None:
    """Remove a stored blob; a blob that is already gone is not an error."""
    try:
        os.remove(blob_path)
    except FileNotFoundError:
        logger.info(f"Stored file already removed: {blob_path}")


# =============================================================================
# Service Functions
# =============================================================================

def upload_case_attachment(
    db: Session,
    case_id: uuid.UUID,
    user_id: uuid.UUID | None,
    filename: str,
    content_type: str,
    file: BinaryIO,
) -> CaseAttachment:
    """
    Store a file and record it on the case.

    Raises:
        NotFoundError: case does not exist
        FileTooLargeError: file exceeds the size limit
    """
    case_service.require_case(db, case_id)

    blob_path, size = store_file(build_storage_key(CASE_PREFIX, filename), file)

    attachment = CaseAttachment(
        case_id=case_id,
        uploaded_by_user_id=user_id,
        file_name=filename,
        mime_type=content_type or "application/octet-stream",
        size_bytes=size,
        blob_path=blob_path,
    )
    try:
        db.add(attachment)
        db.commit()
    except Exception:
        db.rollback()
        delete_stored_file(blob_path)
        raise
    db.refresh(attachment)
    return attachment


def list_case_attachments(db: Session, case_id: uuid.UUID) -> list[CaseAttachment]:
    return db.query(CaseAttachment).filter(
        CaseAttachment.case_id == case_id,
    ).order_by(CaseAttachment.uploaded_at.desc()).all()
