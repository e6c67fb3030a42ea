"""
Storage Service

Object storage for uploaded files. The local backend writes under
``UPLOAD_DIR`` and serves files from ``UPLOAD_BASE_URL``.

Stored keys are random and their extension follows the validated content
type, never the client's filename, so a stored file is always served with
a type from the allowlist below or as ``application/octet-stream``.
"""

import asyncio
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from starlette.datastructures import UploadFile

from app.core.config import settings
from app.core.exceptions import BadRequest, UpstreamFailure


logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

# Content type -> extension of the stored key
STORED_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "text/plain": ".txt",
}
FALLBACK_CONTENT_TYPE = "application/octet-stream"
FALLBACK_EXTENSION = ".bin"


def stored_type(content_type: Optional[str], filename: str = "") -> tuple[str, str]:
    """
    Content type and key extension a file is stored under.

    The declared type wins, with parameters such as ``charset`` dropped;
    without one the filename is used as a hint. Types outside
    ``STORED_EXTENSIONS`` become ``application/octet-stream``.
    """
    content_type = (content_type or "").split(";")[0].strip().lower()
    if not content_type:
        content_type = mimetypes.guess_type(filename)[0] or ""
    extension = STORED_EXTENSIONS.get(content_type)
    if extension is None:
        return FALLBACK_CONTENT_TYPE, FALLBACK_EXTENSION
    return content_type, extension


@dataclass
class StoredFile:
    url: str
    id: str
    name: str
    content_type: str
    size: int


class LocalStorage:
    """Stores files on the local filesystem under a random key."""

    def __init__(self, root: str, base_url: str, max_bytes: int):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    def _write(self, key: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / key).write_bytes(data)

    def _remove(self, key: str) -> None:
        (self.root / key).unlink(missing_ok=True)

    async def read(self, upload: UploadFile) -> bytes:
        """Read an incoming upload, stopping one byte past ``max_bytes``."""
        return await upload.read(self.max_bytes + 1)

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> StoredFile:
        """
        Store ``data`` and return its public location.

        Raises:
            BadRequest: Empty or oversized file.
            UpstreamFailure: The write failed.
        """
        if not data:
            raise BadRequest("Uploaded file is empty")
        if len(data) > self.max_bytes:
            raise BadRequest(f"File exceeds the {self.max_bytes // (1024 * 1024)}MB limit")

        content_type, extension = stored_type(content_type, filename or "")
        key = f"{uuid.uuid4().hex}{extension}"

        try:
            await asyncio.to_thread(self._write, key, data)
        except OSError as e:
            logger.error("Failed to store upload %s: %s", filename, e)
            raise UpstreamFailure("File storage failed") from e

        logger.info("Stored upload %s (%d bytes) as %s", filename, len(data), key)
        return StoredFile(
            url=f"{self.base_url}/{key}",
            id=key,
            name=filename or key,
            content_type=content_type,
            size=len(data),
        )

    async def delete(self, key: str) -> None:
        """Remove a stored file. Failures are logged, not raised."""
        try:
            await asyncio.to_thread(self._remove, key)
        except OSError as e:
            logger.warning("Failed to delete stored file %s: %s", key, e)
        else:
            logger.info("Deleted stored file %s", key)


def get_storage() -> LocalStorage:
    return LocalStorage(settings.UPLOAD_DIR, settings.UPLOAD_BASE_URL, settings.UPLOAD_MAX_BYTES)
