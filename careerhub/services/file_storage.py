"""Local file storage for uploaded media."""
import logging
import uuid
from pathlib import Path

import aiofiles
from fastapi import UploadFile

from careerhub.core.config import settings
from careerhub.core.errors import ValidationError

logger = logging.getLogger(__name__)


class FileStorage:
    """Writes uploads under a root directory, rejecting files above the size cap."""

    def __init__(self, root: str = None, max_size_mb: int = None):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.max_bytes = (max_size_mb or settings.MAX_UPLOAD_SIZE_MB) * 1024 * 1024

    async def save(self, upload_file: UploadFile, prefix: str) -> str:
        """
        Store an uploaded file and return its path relative to the storage root.

        Args:
            upload_file: File received from a multipart request
            prefix: Sub-directory, e.g. "criteria/<id>/videos"

        Raises:
            ValidationError: If the file is empty or larger than the cap
        """
        content = await upload_file.read()
        if not content:
            raise ValidationError(f"File {upload_file.filename} is empty")
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"File {upload_file.filename} exceeds the {self.max_bytes // (1024 * 1024)} MB limit"
            )

        filename = Path(upload_file.filename or "upload").name
        relative = Path(prefix) / f"{uuid.uuid4().hex}-{filename}"
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(target, "wb") as buffer:
            await buffer.write(content)

        logger.info("Stored %s (%d bytes)", relative, len(content))
        return relative.as_posix()

    def resolve(self, relative_path: str) -> Path:
        return self.root / relative_path

    def delete(self, relative_path: str) -> None:
        path = self.resolve(relative_path)
        if path.exists():
            path.unlink()
