"""
Local file storage for uploads.

Files are written below a single upload directory and served by the API under
``PUBLIC_FILES_URL``. Each upload category has an ``UploadPolicy`` listing the
extensions and MIME types it accepts and its size limit.

Example:
    >>> storage = LocalStorage("uploads")
    >>> stored = storage.save(data, "essay.pdf", "application/pdf",
    ...                       folder="student-submissions/42", policy=ASSIGNMENT_FILES)
    >>> stored.url
    '/files/student-submissions/42/1718000000000-k3j9x2.pdf'
"""

import logging
import secrets
import string
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import UPLOAD_DIR, PUBLIC_FILES_URL

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage failures."""


class InvalidUploadError(StorageError):
    """Raised when an upload is rejected by its policy."""


class UploadTooLargeError(InvalidUploadError):
    """Raised when an upload exceeds its policy's size limit."""


@dataclass(frozen=True)
class UploadPolicy:
    name: str
    extensions: frozenset
    mime_types: frozenset
    max_size: int
    type_error: str
    size_error: str


ASSIGNMENT_FILES = UploadPolicy(
    name="assignment",
    extensions=frozenset({"pdf", "doc", "docx"}),
    mime_types=frozenset({
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }),
    max_size=20 * 1024 * 1024,
    type_error="Invalid file type. Only PDF, DOC and DOCX files are allowed.",
    size_error="File too large. Maximum size is 20MB.",
)

QUESTION_IMAGES = UploadPolicy(
    name="question-image",
    extensions=frozenset({"jpg", "jpeg", "png"}),
    mime_types=frozenset({"image/jpeg", "image/jpg", "image/png"}),
    max_size=5 * 1024 * 1024,
    type_error="Invalid file type. Only JPG and PNG are allowed.",
    size_error="File too large. Maximum size is 5MB.",
)


@dataclass
class StoredFile:
    path: str  # relative to the storage root, always with forward slashes
    url: str
    file_name: str
    size: int
    content_type: str


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else ""


class LocalStorage:
    """
    Stores uploaded files on the local filesystem.

    Args:
        root: Directory that holds every stored file.
        public_url: URL prefix the directory is served under.
    """

    def __init__(self, root: str = UPLOAD_DIR, public_url: str = PUBLIC_FILES_URL):
        self.root = Path(root).resolve()
        self.public_url = public_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"LocalStorage initialized with root: {self.root}")

    def validate(self, filename: str, content_type: Optional[str], size: int, policy: UploadPolicy) -> str:
        """Check an upload against ``policy`` and return its extension."""
        if not filename:
            raise InvalidUploadError("No file provided")
        ext = _extension(filename)
        if ext not in policy.extensions or (content_type and content_type not in policy.mime_types):
            raise InvalidUploadError(policy.type_error)
        if size == 0:
            raise InvalidUploadError("The uploaded file is empty")
        if size > policy.max_size:
            raise UploadTooLargeError(policy.size_error)
        return ext

    def _resolve(self, relative: str) -> Path:
        target = (self.root / relative).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageError("Path escapes the storage root")
        return target

    @staticmethod
    def unique_name(ext: str) -> str:
        rand = ''.join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(6))
        return f"{int(time.time() * 1000)}-{rand}.{ext}"

    def save(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str],
        folder: str,
        policy: UploadPolicy,
    ) -> StoredFile:
        """
        Validate and write an upload.

        Raises:
            InvalidUploadError: If the file type is not allowed or the file is empty.
            UploadTooLargeError: If the file exceeds the policy limit.
            StorageError: If the file cannot be written.
        """
        ext = self.validate(filename, content_type, len(data), policy)
        relative = f"{folder.strip('/')}/{self.unique_name(ext)}"
        target = self._resolve(relative)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to save {filename}: {e}")
            raise StorageError(f"Failed to save file {filename}") from e

        logger.debug(f"Saved {policy.name} upload to {target}")
        return StoredFile(
            path=relative,
            url=f"{self.public_url}/{relative}",
            file_name=filename,
            size=len(data),
            content_type=content_type or "application/octet-stream",
        )

    def delete(self, relative: str) -> bool:
        """Remove a stored file. Returns False when it did not exist."""
        target = self._resolve(relative)
        if not target.is_file():
            return False
        target.unlink()
        logger.debug(f"Deleted {target}")
        return True


async def read_upload(upload, policy: UploadPolicy) -> bytes:
    """Read an upload, stopping one byte past the policy limit so oversize files fail validation."""
    return await upload.read(policy.max_size + 1)


_storage: Optional[LocalStorage] = None


def get_storage() -> LocalStorage:
    """Dependency returning the process-wide storage instance."""
    global _storage
    if _storage is None:
        _storage = LocalStorage()
    return _storage
