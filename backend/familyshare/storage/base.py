"""Abstract FileStore interface.

Every storage back-end (local disk, S3, …) implements this interface so the
upload, list and delete handlers never touch the filesystem directly.

Stored objects live in one flat namespace and are named ``{id}.{extension}``;
the identifier never contains a ``.``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass
class UploadMetadata:
    """Facts about an upload that the stored name cannot carry."""
    original_name: str
    content_type: str
    uploaded_at: datetime


@dataclass
class StoredObject:
    """One entry as seen by a storage scan."""
    name: str
    size: int
    created_at: datetime
    original_name: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def file_id(self) -> str:
        return split_stored_name(self.name)[0]

    @property
    def extension(self) -> str:
        return split_stored_name(self.name)[1]


def split_stored_name(name: str) -> tuple[str, str]:
    """Split ``{id}.{ext}`` into ``(id, ext)``.

    Everything before the final ``.`` is the identifier.  A name without a dot
    yields an empty extension.
    """
    head, sep, ext = name.rpartition(".")
    if not sep:
        return name, ""
    return head, ext


class FileStore(ABC):
    """Abstract base class for storage back-ends.

    No locking is done: concurrent put/list/delete calls may interleave, and
    a scan racing a delete drops the entry instead of failing.
    """

    @property
    @abstractmethod
    def kind(self) -> str:
        """Short backend name used in logs (``"local"``, ``"s3"``)."""

    @abstractmethod
    def put(self, stored_name: str, content: bytes, metadata: UploadMetadata) -> StoredObject:
        """Write *content* under *stored_name* in a single operation.

        Raises:
            OSError / provider errors: On any write failure.  No cleanup of a
            partial write is attempted.
        """

    @abstractmethod
    def list(self) -> List[StoredObject]:
        """Return every stored object, in no particular order.

        A missing or unreadable container yields an empty list.  Entries that
        cannot be inspected are skipped.
        """

    @abstractmethod
    def get(self, stored_name: str) -> bytes:
        """Return the bytes of *stored_name*.

        Raises:
            FileNotFoundError: If no such object exists.
        """

    @abstractmethod
    def delete(self, file_id: str) -> Optional[str]:
        """Remove the object addressed by *file_id*.

        Returns:
            The removed stored name, or ``None`` when nothing matched.

        Raises:
            FileNotFoundError: If the container itself cannot be read.
        """


def pick_match(names: List[str], file_id: str) -> Optional[str]:
    """Choose the entry a delete request for *file_id* addresses.

    An entry whose identifier equals *file_id* wins; otherwise the first
    entry whose name starts with *file_id* is used.
    """
    if not file_id:
        return None
    for name in names:
        if split_stored_name(name)[0] == file_id:
            return name
    for name in names:
        if name.startswith(file_id):
            return name
    return None
