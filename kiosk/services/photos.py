"""
Employee photo storage on the local filesystem.

Files live in ``settings.UPLOAD_DIR`` and are served under ``/uploads``.
The database stores the public path (``/uploads/<filename>``).
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from fastapi import UploadFile

from kiosk.core.config import settings
from kiosk.core.exceptions import PayloadTooLarge, UnsupportedMediaType

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"
ALLOWED_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
_CHUNK = 64 * 1024


def upload_dir() -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


async def save_photo(file: UploadFile) -> str:
    """Validate and store an uploaded image, returning its public path."""
    content_type = (file.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise UnsupportedMediaType("Only image files are allowed.")
    if content_type not in ALLOWED_TYPES:
        raise UnsupportedMediaType(
            "Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed."
        )

    extension = os.path.splitext(file.filename or "")[1].lower()
    filename = f"employee-{uuid.uuid4().hex}{extension}"
    target = upload_dir() / filename

    written = 0
    try:
        with open(target, "wb") as buffer:
            while chunk := await file.read(_CHUNK):
                written += len(chunk)
                if written > settings.MAX_PHOTO_BYTES:
                    raise PayloadTooLarge(
                        f"File too large. Maximum size is "
                        f"{settings.MAX_PHOTO_BYTES // (1024 * 1024)}MB."
                    )
                buffer.write(chunk)
    except Exception:
        target.unlink(missing_ok=True)
        raise

    logger.info("Stored photo %s (%d bytes)", filename, written)
    return f"{PUBLIC_PREFIX}{filename}"


def delete_photo(public_path: str | None) -> None:
    """Remove a stored photo; failures are logged, never raised."""
    if not public_path:
        return
    filename = public_path.rsplit("/", 1)[-1]
    if not filename:
        return
    target = upload_dir() / filename
    try:
        target.unlink(missing_ok=True)
        logger.info("Deleted photo: %s", filename)
    except OSError as exc:
        logger.error("Error deleting photo %s: %s", filename, exc)
