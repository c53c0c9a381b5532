"""
Local-disk storage for ticket attachments.

Files are written under UPLOAD_DIR with a random name that keeps the
original extension, and are served back at UPLOAD_URL_PREFIX/<name>.
"""

import uuid
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile

from campus_ops.core.config import get_settings
from campus_ops.core.exceptions import ValidationError
from campus_ops.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "application/pdf",
}


def upload_root() -> Path:
    root = Path(settings.UPLOAD_DIR)
    root.mkdir(parents=True, exist_ok=True)
    return root


def validate_attachments(files: Optional[list[UploadFile]]) -> list[UploadFile]:
    files = [f for f in (files or []) if (f.filename or "").strip()]
    if len(files) > settings.MAX_TICKET_ATTACHMENTS:
        raise ValidationError(
            f"At most {settings.MAX_TICKET_ATTACHMENTS} attachments are allowed",
            received=len(files),
        )
    for f in files:
        if f.content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                f"Unsupported attachment type: {f.content_type}",
                filename=f.filename,
            )
    return files


async def store_file(file: UploadFile) -> str:
    data = await file.read()
    if len(data) > settings.MAX_ATTACHMENT_BYTES:
        raise ValidationError(
            f"Attachment {file.filename} exceeds {settings.MAX_ATTACHMENT_BYTES} bytes",
            filename=file.filename,
        )

    ext = Path(file.filename or "").suffix.lower()
    fname = f"{uuid.uuid4().hex}{ext}"
    (upload_root() / fname).write_bytes(data)

    url = f"{settings.UPLOAD_URL_PREFIX}/{fname}"
    logger.info("attachment_stored", url=url, size=len(data))
    return url


async def store_files(files: Iterable[UploadFile]) -> list[str]:
    """Store every file; on failure remove the ones already written."""
    urls: list[str] = []
    try:
        for f in files:
            urls.append(await store_file(f))
    except Exception:
        delete_files(urls)
        raise
    return urls


def delete_files(urls: Iterable[str]) -> None:
    """Best-effort removal; a missing file is not an error."""
    prefix = f"{settings.UPLOAD_URL_PREFIX}/"
    for url in urls:
        if not url or not url.startswith(prefix):
            continue
        path = upload_root() / Path(url[len(prefix):]).name
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("attachment_delete_failed", url=url, error=str(e))
