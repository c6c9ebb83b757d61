"""Upload widget state machine.

Tracks one status per dropped file, keyed by file name:

    idle -> uploading(progress) -> success | error

Successful uploads are prepended to the displayed list and their status is
cleared once it is older than ``clear_delay`` seconds.  Expired statuses are
pruned at the start of every ``refresh`` and ``drop``; a front end that redraws
on a timer can also call ``prune_statuses`` itself.  Errors stay until the same
file is dropped again.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from familyshare.files.schemas import MAX_FILE_SIZE_BYTES, FileDescriptor, is_allowed_mime_type

from .api import ApiError, FileShareClient, LocalFile
from .preview import PreviewModal

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Upload complete!"
GENERIC_UPLOAD_ERROR = "Upload failed"


class UploadState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class UploadStatus:
    """Status of one file in the widget, with its payload."""
    state: UploadState = UploadState.IDLE
    progress: int = 0
    message: Optional[str] = None
    finished_at: Optional[float] = None

    @property
    def label(self) -> str:
        return self.message or f"{self.progress}%"


def rejection_reason(file: LocalFile) -> Optional[str]:
    """Apply the server's size and type rules before sending anything."""
    if file.size > MAX_FILE_SIZE_BYTES:
        return "File too large. Max size is 10MB."
    if not is_allowed_mime_type(file.content_type):
        return "File type not allowed."
    return None


class UploadWidget:
    """Drop zone, upload progress and file list, minus the rendering.

    Args:
        client: API client used for every request.
        clear_delay: Seconds a success status stays visible.
        clock: Monotonic time source (tests replace it).
        max_workers: Thread pool size for parallel drops.  ``None`` lets the
                     executor choose.
    """

    def __init__(
        self,
        client: FileShareClient,
        clear_delay: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        max_workers: Optional[int] = None,
    ):
        self._client = client
        self._clear_delay = clear_delay
        self._clock = clock
        self._max_workers = max_workers
        self._lock = threading.Lock()

        self.files: List[FileDescriptor] = []
        self.statuses: Dict[str, UploadStatus] = {}
        self.delete_errors: Dict[str, str] = {}
        self.is_loading = True

    # -----------------------------------------------------------------------
    # Listing
    # -----------------------------------------------------------------------

    def refresh(self) -> List[FileDescriptor]:
        """Replace the displayed list with the server's.

        A failed fetch is only logged; the previous list stays on screen.
        """
        self.prune_statuses()
        self.is_loading = True
        try:
            files = self._client.list_files()
        except ApiError as e:
            logger.error("Error fetching files: %s", e)
        else:
            with self._lock:
                self.files = files
        finally:
            self.is_loading = False
        return self.files

    # -----------------------------------------------------------------------
    # Uploading
    # -----------------------------------------------------------------------

    def _set_status(self, name: str, status: UploadStatus) -> None:
        with self._lock:
            self.statuses[name] = status

    def prefilter(self, files: Iterable[LocalFile]) -> Tuple[List[LocalFile], List[LocalFile]]:
        """Split *files* into accepted and rejected; rejected ones get an error status."""
        accepted, rejected = [], []
        for file in files:
            reason = rejection_reason(file)
            if reason is None:
                accepted.append(file)
            else:
                rejected.append(file)
                self._set_status(file.name, UploadStatus(UploadState.ERROR, 0, reason))
        return accepted, rejected

    def drop(self, files: Iterable[LocalFile], parallel: bool = False) -> Dict[str, UploadStatus]:
        """Handle dropped or selected files.

        Files are uploaded one after another unless *parallel* is set, in
        which case they go out together through a thread pool.
        """
        self.prune_statuses()
        accepted, _ = self.prefilter(files)
        for file in accepted:
            self._set_status(file.name, UploadStatus(UploadState.UPLOADING, 0))

        if parallel and len(accepted) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                list(pool.map(self.upload, accepted))
        else:
            for file in accepted:
                self.upload(file)

        with self._lock:
            return dict(self.statuses)

    def _on_progress(self, name: str, sent: int, total: int) -> None:
        percent = 99 if not total else min(99, sent * 100 // total)
        with self._lock:
            status = self.statuses.get(name)
            if status is not None and status.state == UploadState.UPLOADING:
                status.progress = max(status.progress, percent)

    def upload(self, file: LocalFile) -> UploadStatus:
        """Send one file and record the outcome."""
        self._set_status(file.name, UploadStatus(UploadState.UPLOADING, 0))
        try:
            result = self._client.upload(
                file,
                on_progress=lambda sent, total: self._on_progress(file.name, sent, total),
            )
        except ApiError as e:
            logger.error("Upload of %s failed: %s", file.name, e)
            status = UploadStatus(UploadState.ERROR, 0, e.message or GENERIC_UPLOAD_ERROR)
            self._set_status(file.name, status)
            return status

        status = UploadStatus(UploadState.SUCCESS, 100, SUCCESS_MESSAGE, finished_at=self._clock())
        with self._lock:
            self.files.insert(0, result.to_descriptor())
            self.statuses[file.name] = status
        return status

    def prune_statuses(self, now: Optional[float] = None) -> List[str]:
        """Drop success statuses older than ``clear_delay``; returns their names."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [
                name for name, status in self.statuses.items()
                if status.state == UploadState.SUCCESS
                and status.finished_at is not None
                and now - status.finished_at >= self._clear_delay
            ]
            for name in expired:
                del self.statuses[name]
        return expired

    # -----------------------------------------------------------------------
    # Deleting
    # -----------------------------------------------------------------------

    def delete(self, file_id: str) -> bool:
        """Delete on the server, then locally.  Local state only changes on success."""
        try:
            self._client.delete(file_id)
        except ApiError as e:
            logger.error("Failed to delete %s: %s", file_id, e)
            self.delete_errors[file_id] = e.message
            return False

        with self._lock:
            self.files = [f for f in self.files if f.id != file_id]
        self.delete_errors.pop(file_id, None)
        return True

    # -----------------------------------------------------------------------
    # Preview
    # -----------------------------------------------------------------------

    def open_preview(self, file_id: str, modal: Optional[PreviewModal] = None) -> PreviewModal:
        """Open *file_id* in a preview modal that can step through the list.

        Navigation wraps around at either end.

        Raises:
            KeyError: If *file_id* is not in the displayed list.
        """
        index = next((i for i, f in enumerate(self.files) if f.id == file_id), None)
        if index is None:
            raise KeyError(file_id)

        modal = modal or PreviewModal(self._client)

        def show(i: int) -> None:
            total = len(self.files)
            if total == 0:
                modal.close()
                return
            i %= total
            many = total > 1
            modal.open(
                self.files[i],
                on_next=(lambda: show(i + 1)) if many else None,
                on_previous=(lambda: show(i - 1)) if many else None,
                current_index=i,
                total_files=total,
            )

        show(index)
        return modal
