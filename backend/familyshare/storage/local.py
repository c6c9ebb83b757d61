"""Local disk storage backend.

Files are stored in one flat directory: {upload_dir}/{uuid}.{ext}
Upload metadata that the name cannot carry (original filename, declared MIME
type, upload time) goes to a JSON sidecar: {upload_dir}/.meta/{uuid}.json
"""
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .base import FileStore, StoredObject, UploadMetadata, pick_match, split_stored_name

logger = logging.getLogger(__name__)

META_DIR_NAME = ".meta"


def _is_visible(name: str) -> bool:
    return not name.startswith(".")


class LocalDiskStore(FileStore):
    """FileStore backed by a single directory on local disk."""

    def __init__(self, upload_dir: str, sidecar_metadata: bool = True):
        self._upload_dir = Path(upload_dir)
        self._sidecar_metadata = sidecar_metadata

    @property
    def kind(self) -> str:
        return "local"

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    def _meta_path(self, file_id: str) -> Path:
        return self._upload_dir / META_DIR_NAME / f"{file_id}.json"

    def _safe_path(self, stored_name: str) -> Path:
        if not stored_name or not _is_visible(stored_name) or "/" in stored_name or "\\" in stored_name:
            raise FileNotFoundError(stored_name)
        return self._upload_dir / stored_name

    def put(self, stored_name: str, content: bytes, metadata: UploadMetadata) -> StoredObject:
        """Write the file (and its sidecar) to disk."""
        self._upload_dir.mkdir(parents=True, exist_ok=True)

        file_path = self._safe_path(stored_name)
        file_path.write_bytes(content)
        logger.info("Saved file: %s (%d bytes)", file_path, len(content))

        if self._sidecar_metadata:
            self._write_sidecar(split_stored_name(stored_name)[0], metadata)

        return StoredObject(
            name=stored_name,
            size=len(content),
            created_at=metadata.uploaded_at,
            original_name=metadata.original_name,
            content_type=metadata.content_type,
        )

    def _write_sidecar(self, file_id: str, metadata: UploadMetadata) -> None:
        meta_path = self._meta_path(file_id)
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        meta_path.write_text(
            json.dumps({
                "original_name": metadata.original_name,
                "content_type": metadata.content_type,
                "uploaded_at": metadata.uploaded_at.isoformat(),
            }),
            encoding="utf-8",
        )

    def _read_sidecar(self, file_id: str) -> dict:
        if not self._sidecar_metadata:
            return {}
        meta_path = self._meta_path(file_id)
        try:
            return json.loads(meta_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable metadata %s: %s", meta_path, e)
            return {}

    @staticmethod
    def _creation_time(st: os.stat_result) -> datetime:
        # st_birthtime is missing on most Linux filesystems
        ts = getattr(st, "st_birthtime", None) or st.st_mtime
        return datetime.fromtimestamp(ts, tz=timezone.utc)

    def list(self) -> List[StoredObject]:
        try:
            entries = list(os.scandir(self._upload_dir))
        except OSError:
            # Missing directory means nothing has been uploaded yet
            return []

        objects = []
        for entry in entries:
            if not _is_visible(entry.name):
                continue
            try:
                if not entry.is_file():
                    continue
                st = entry.stat()
            except OSError as e:
                logger.error("Error reading file %s: %s", entry.name, e)
                continue

            meta = self._read_sidecar(split_stored_name(entry.name)[0])
            created_at = self._creation_time(st)
            if meta.get("uploaded_at"):
                try:
                    created_at = datetime.fromisoformat(meta["uploaded_at"])
                except ValueError:
                    logger.warning("Bad uploaded_at in metadata for %s", entry.name)

            objects.append(StoredObject(
                name=entry.name,
                size=st.st_size,
                created_at=created_at,
                original_name=meta.get("original_name"),
                content_type=meta.get("content_type"),
            ))
        return objects

    def get(self, stored_name: str) -> bytes:
        return self._safe_path(stored_name).read_bytes()

    def _file_names(self) -> List[str]:
        # Same visibility rules as list(): subdirectories are never candidates
        names = []
        for entry in os.scandir(self._upload_dir):
            if not _is_visible(entry.name):
                continue
            try:
                if entry.is_file():
                    names.append(entry.name)
            except OSError as e:
                logger.error("Error reading file %s: %s", entry.name, e)
        return names

    def delete(self, file_id: str) -> Optional[str]:
        try:
            names = self._file_names()
        except OSError as e:
            raise FileNotFoundError(str(self._upload_dir)) from e

        match = pick_match(names, file_id)
        if match is None:
            return None

        (self._upload_dir / match).unlink()
        self._meta_path(split_stored_name(match)[0]).unlink(missing_ok=True)
        logger.info("Deleted file: %s", self._upload_dir / match)
        return match
