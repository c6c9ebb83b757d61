"""Storage back-ends for uploaded files.

Provides a clean FileStore abstraction with a local-disk default and an S3
implementation.  A module-level singleton is built lazily from config.
"""
import logging
from typing import Optional

from .base import FileStore, StoredObject, UploadMetadata, split_stored_name
from .local import LocalDiskStore
from .s3 import S3FileStore

logger = logging.getLogger(__name__)

__all__ = [
    "FileStore",
    "StoredObject",
    "UploadMetadata",
    "split_stored_name",
    "LocalDiskStore",
    "S3FileStore",
    "build_store",
    "get_store",
    "set_store",
    "reset_store",
]

# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_store: Optional[FileStore] = None


def build_store(storage_settings) -> FileStore:
    """Create the FileStore described by a ``StorageSettings`` object."""
    if storage_settings.backend == "s3":
        s3 = storage_settings.s3
        return S3FileStore(
            bucket=s3.bucket,
            prefix=s3.prefix,
            region_name=s3.region,
            endpoint_url=s3.endpoint_url,
            aws_access_key_id=s3.access_key_id,
            aws_secret_access_key=s3.secret_access_key,
        )
    return LocalDiskStore(
        upload_dir=storage_settings.upload_dir,
        sidecar_metadata=storage_settings.sidecar_metadata,
    )


def get_store() -> FileStore:
    """Return the global FileStore, building it from config on first use."""
    global _store
    if _store is None:
        from familyshare.config import get_config  # local import to avoid circular deps

        _store = build_store(get_config().storage)
        logger.info("Storage backend ready: %s", _store.kind)
    return _store


def set_store(store: Optional[FileStore]) -> None:
    """Set (or replace) the global FileStore instance."""
    global _store
    _store = store


def reset_store() -> None:
    """Drop the global FileStore (for testing)."""
    set_store(None)
