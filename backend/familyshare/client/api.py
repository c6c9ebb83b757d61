"""HTTP client for the family share API.

Wraps an ``httpx.Client`` so callers work with FileDescriptor objects and
ApiError exceptions instead of raw responses.  Any ``httpx.Client`` works,
including FastAPI's ``TestClient``.  No call is retried.
"""
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from familyshare.files.schemas import (
    GENERIC_MIME_TYPE,
    DeleteResponse,
    FileDescriptor,
    FileListResponse,
    UploadResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"

ProgressCallback = Callable[[int, int], None]

# Markdown is not in every platform's mimetypes table
mimetypes.add_type("text/markdown", ".md")


class ApiError(Exception):
    """A request failed with a non-2xx status or never reached the server."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class LocalFile:
    """A file picked by the user, not yet uploaded."""
    name: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path) -> "LocalFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            content=path.read_bytes(),
            content_type=content_type or GENERIC_MIME_TYPE,
        )


class _ProgressReader(io.BytesIO):
    """BytesIO that reports how much of itself has been read.

    httpx streams multipart file fields by calling ``read()`` in chunks, so
    this gives real progress events as the body goes out.
    """

    def __init__(self, content: bytes, callback: Optional[ProgressCallback]):
        super().__init__(content)
        self._total = len(content)
        self._callback = callback

    def read(self, size: Optional[int] = -1) -> bytes:
        chunk = super().read(size)
        if self._callback is not None and chunk:
            self._callback(min(self.tell(), self._total), self._total)
        return chunk


class FileShareClient:
    """Client for the upload, list and delete endpoints.

    Args:
        http: Client to send requests with.  When omitted one is created for
              *base_url* and closed by ``close()``.
        base_url: Server address used when *http* is not given.
    """

    def __init__(self, http: Optional[httpx.Client] = None, base_url: str = DEFAULT_BASE_URL):
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "FileShareClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _send(self, method: str, url: str, generic_error: str, **kwargs) -> httpx.Response:
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise ApiError(generic_error) from e

        if response.is_success:
            return response

        message = generic_error
        try:
            message = response.json().get("error") or generic_error
        except (ValueError, AttributeError):
            pass
        raise ApiError(message, status_code=response.status_code)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def upload(self, file: LocalFile, on_progress: Optional[ProgressCallback] = None) -> UploadResponse:
        """POST one file to ``/api/upload``.

        Args:
            file: The file to send.
            on_progress: Called with ``(bytes_sent, total_bytes)`` while the
                         body is streamed.

        Raises:
            ApiError: With the server's message on rejection or failure.
        """
        body = _ProgressReader(file.content, on_progress)
        response = self._send(
            "POST",
            "/api/upload",
            "Upload failed",
            files={"file": (file.name, body, file.content_type)},
        )
        return UploadResponse.model_validate(response.json())

    def list_files(self) -> List[FileDescriptor]:
        response = self._send("GET", "/api/files", "Failed to list files")
        return FileListResponse.model_validate(response.json()).files

    def delete(self, file_id: str) -> DeleteResponse:
        response = self._send("DELETE", f"/api/upload/{file_id}", "Delete failed")
        return DeleteResponse.model_validate(response.json())

    def fetch_bytes(self, url: str) -> bytes:
        return self._send("GET", url, "Failed to load file content").content

    def fetch_text(self, url: str) -> str:
        return self._send("GET", url, "Failed to load file content").text
