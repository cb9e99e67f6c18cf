"""Local file storage for leave documents and task attachments."""

from __future__ import annotations

import logging
import os
import uuid

from fastapi import UploadFile

from hr_portal.common.constants import ALLOWED_UPLOAD_TYPES
from hr_portal.common.exceptions import BadRequestException
from hr_portal.config import Settings

logger = logging.getLogger(__name__)


async def save_upload(settings: Settings, file: UploadFile, subdir: str) -> dict[str, str]:
    """Validate and store *file* under ``UPLOAD_DIR/<subdir>``.

    Returns ``{"url": ..., "filename": ...}`` where ``filename`` is the
    client-supplied name and ``url`` the stored path.
    """
    if file.content_type not in ALLOWED_UPLOAD_TYPES:
        raise BadRequestException(
            detail=f"File type '{file.content_type}' not allowed. Accepted: PDF, JPEG, PNG, WEBP, DOC, DOCX.",
        )

    contents = await file.read()

    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(contents) > max_size:
        raise BadRequestException(
            detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB.",
        )

    upload_dir = os.path.join(settings.UPLOAD_DIR, subdir)
    os.makedirs(upload_dir, exist_ok=True)

    # UUID-only filename so client names never reach the filesystem
    safe_name = f"{uuid.uuid4().hex}.{ALLOWED_UPLOAD_TYPES[file.content_type]}"
    file_path = os.path.join(upload_dir, safe_name)

    with open(file_path, "wb") as f:
        f.write(contents)

    logger.info("Stored upload", extra={"subdir": subdir, "stored_as": safe_name, "size": len(contents)})
    return {
        "url": f"/uploads/{subdir}/{safe_name}",
        "filename": file.filename or safe_name,
    }
