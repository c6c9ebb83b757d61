"""File share service.

Validates uploads, names stored files and turns storage entries into
FileDescriptor records.  Files are stored as: {uuid}.{ext}
"""
import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Callable, List, Optional

from familyshare.storage import FileStore, StoredObject, UploadMetadata, get_store

from .schemas import (
    MAX_FILE_SIZE_BYTES,
    FileDescriptor,
    UploadResponse,
    infer_mime_type,
    is_allowed_mime_type,
)

logger = logging.getLogger(__name__)

FALLBACK_EXTENSION = "bin"

_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]+$")


class UploadRejected(ValueError):
    """Raised when an upload fails validation (HTTP 400)."""


class StoredFileNotFound(LookupError):
    """Raised when a delete or download addresses no stored file (HTTP 404)."""


def stored_extension(filename: str) -> str:
    """Return the lower-cased extension used for the stored name.

    Names without a usable extension are stored as ``.bin``.
    """
    # Browsers may send Windows paths for the filename
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lstrip(".")
    if not suffix or not _EXTENSION_RE.match(suffix):
        return FALLBACK_EXTENSION
    return suffix.lower()


class FileShareService:
    """Upload, list and delete operations over a FileStore.

    Args:
        store: Storage backend.  Defaults to the global store.
        public_path: URL path prefix stored files are served from.
        clock: Returns the current time (tests pin this for ordering).
    """

    def __init__(
        self,
        store: Optional[FileStore] = None,
        public_path: str = "/uploads",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._public_path = public_path.rstrip("/")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def store(self) -> FileStore:
        return self._store or get_store()

    def url_for(self, stored_name: str) -> str:
        return f"{self._public_path}/{stored_name}"

    # -----------------------------------------------------------------------
    # Upload
    # -----------------------------------------------------------------------

    @staticmethod
    def validate(filename: Optional[str], size: int, content_type: Optional[str]) -> None:
        """Check an incoming file against the upload rules.

        Raises:
            UploadRejected: With the message the client should see.
        """
        if filename is None:
            raise UploadRejected("No file received.")
        if size > MAX_FILE_SIZE_BYTES:
            raise UploadRejected("File too large. Max size is 10MB.")
        if not is_allowed_mime_type(content_type):
            raise UploadRejected("File type not allowed.")

    def save(self, filename: str, content: bytes, content_type: str) -> UploadResponse:
        """Validate and persist one uploaded file.

        Args:
            filename: Name the client used for the file
            content: Full file content
            content_type: MIME type declared by the client

        Returns:
            UploadResponse describing the stored file

        Raises:
            UploadRejected: If the file fails validation
            OSError / storage errors: If writing fails
        """
        self.validate(filename, len(content), content_type)

        file_id = str(uuid.uuid4())
        stored_name = f"{file_id}.{stored_extension(filename)}"
        uploaded_at = self._clock()

        stored = self.store.put(
            stored_name,
            content,
            UploadMetadata(
                original_name=filename,
                content_type=content_type,
                uploaded_at=uploaded_at,
            ),
        )

        return UploadResponse(
            id=file_id,
            filename=stored.name,
            original_name=filename,
            url=self.url_for(stored.name),
            size=stored.size,
            type=content_type,
            uploaded_at=uploaded_at,
        )

    # -----------------------------------------------------------------------
    # List
    # -----------------------------------------------------------------------

    def describe(self, obj: StoredObject) -> FileDescriptor:
        return FileDescriptor(
            id=obj.file_id,
            file_name=obj.name,
            original_name=obj.original_name or obj.name,
            size=obj.size,
            type=infer_mime_type(obj.extension),
            uploaded_at=obj.created_at,
            url=self.url_for(obj.name),
        )

    def list_files(self) -> List[FileDescriptor]:
        """Return every stored file, newest first."""
        descriptors = [self.describe(obj) for obj in self.store.list()]
        descriptors.sort(key=lambda d: d.uploaded_at.timestamp(), reverse=True)
        return descriptors

    # -----------------------------------------------------------------------
    # Fetch / delete
    # -----------------------------------------------------------------------

    def read(self, stored_name: str) -> bytes:
        try:
            return self.store.get(stored_name)
        except FileNotFoundError as e:
            raise StoredFileNotFound(stored_name) from e

    def delete(self, file_id: str) -> str:
        """Delete the file addressed by *file_id*.

        Returns:
            The stored name that was removed.

        Raises:
            StoredFileNotFound: If nothing matches, or storage cannot be read.
        """
        try:
            removed = self.store.delete(file_id)
        except FileNotFoundError as e:
            raise StoredFileNotFound("File not found or already deleted") from e
        if removed is None:
            raise StoredFileNotFound("File not found")
        return removed
