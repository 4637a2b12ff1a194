"""
File storage for deliverable uploads.

Files are written under ``UPLOAD_DIR/<project_id>/`` with a timestamped,
sanitized name and served back from ``UPLOAD_BASE_URL``.
"""
import logging
import os
import secrets
from datetime import datetime
from typing import Optional, Protocol

import aiofiles
from fastapi import UploadFile

from engagement.core.config import settings
from engagement.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

ALLOWED_CONTENT_TYPES = {
    "image/jpeg", "image/png", "image/gif", "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/zip", "application/x-rar-compressed",
    "text/plain", "text/csv",
}


class FileStorage(Protocol):
    async def store(self, file: UploadFile, project_id: Optional[int] = None) -> str:
        ...


def safe_filename(name: str) -> str:
    name = os.path.basename(name or "upload")
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in name) or "upload"


class LocalFileStorage:
    def __init__(self, root: str = None, base_url: str = None, max_bytes: int = None):
        self.root = root or settings.UPLOAD_DIR
        self.base_url = (base_url or settings.UPLOAD_BASE_URL).rstrip("/")
        self.max_bytes = max_bytes or settings.UPLOAD_MAX_BYTES

    async def store(self, file: UploadFile, project_id: Optional[int] = None) -> str:
        """
        Stream ``file`` to disk and return the URL it will be served from.

        Raises:
            ValidationError: Missing file, disallowed type or over the size limit
        """
        if file is None or not file.filename:
            raise ValidationError("No file uploaded")
        if file.content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(f"File type not allowed: {file.content_type}")

        folder = str(project_id) if project_id else "general"
        target_dir = os.path.join(self.root, folder)
        os.makedirs(target_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{timestamp}_{secrets.token_hex(4)}_{safe_filename(file.filename)}"
        path = os.path.join(target_dir, filename)

        written = 0
        async with aiofiles.open(path, "wb") as out_file:
            while chunk := await file.read(CHUNK_SIZE):
                written += len(chunk)
                if written > self.max_bytes:
                    break
                await out_file.write(chunk)

        if written > self.max_bytes:
            os.remove(path)
            raise ValidationError(f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB")

        logger.info("Stored upload %s (%d bytes)", path, written)
        return f"{self.base_url}/{folder}/{filename}"
