"""FastAPI routers for upload, listing, deletion and file serving.

Constraints
-----------
- One file per upload, multipart field ``file``, max 10MB.
- Returns 400 with ``{"error": "..."}`` for missing, oversize or disallowed files.
- Returns 404 when a delete addresses no stored file.
- Returns 500 with a generic ``{"error": "..."}`` body on any other failure;
  the cause is only logged.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile

from .schemas import (
    MAX_FILE_SIZE_BYTES,
    DeleteResponse,
    FileListResponse,
    UploadResponse,
    infer_mime_type,
)
from .service import FileShareService, StoredFileNotFound, UploadRejected, stored_extension

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["files"])

uploads_router = APIRouter(prefix="/uploads", tags=["uploads"])


def _service() -> FileShareService:
    return FileShareService()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("/upload", response_model=UploadResponse)
async def upload_file(request: Request):
    """Upload a single file.

    Supported file types:
    - Images: jpeg, png, gif, webp
    - Documents: pdf, doc, docx
    - Text: plain text, markdown

    Returns:
        ``{id, filename, originalName, url, size, type, uploadedAt}``

    Example::

        POST /api/upload   (multipart/form-data, field "file")

        200 OK
        {
            "id": "0b6f…",
            "filename": "0b6f….png",
            "originalName": "beach.png",
            "url": "/uploads/0b6f….png",
            "size": 52311,
            "type": "image/png",
            "uploadedAt": "2024-07-01T10:00:00Z"
        }
    """
    service = _service()
    try:
        # Spooled parts are closed when the form context exits
        async with request.form() as form:
            upload = form.get("file")
            if not isinstance(upload, UploadFile):
                return _error("No file received.", 400)

            # The part is already spooled; this only avoids loading it into memory
            if upload.size is not None and upload.size > MAX_FILE_SIZE_BYTES:
                return _error("File too large. Max size is 10MB.", 400)

            content = await upload.read()

        result = service.save(
            filename=upload.filename or "",
            content=content,
            content_type=upload.content_type or "",
        )
        logger.info(
            "File uploaded: %s (%d bytes) as %s",
            result.original_name,
            result.size,
            result.filename,
        )
        return result

    except UploadRejected as e:
        logger.info("Upload rejected: %s", e)
        return _error(str(e), 400)
    except Exception:
        logger.exception("Upload error")
        return _error("Upload failed.", 500)


@router.get("/files", response_model=FileListResponse)
async def list_files():
    """List every stored file, newest first.

    A missing upload directory is reported as an empty list.
    """
    try:
        return FileListResponse(files=_service().list_files())
    except Exception:
        logger.exception("Error listing files")
        return _error("Failed to list files", 500)


@router.delete("/upload/{file_id}", response_model=DeleteResponse)
async def delete_file(file_id: str):
    """Delete the stored file whose name starts with *file_id*."""
    try:
        removed = _service().delete(file_id)
    except StoredFileNotFound as e:
        return _error(str(e), 404)
    except Exception:
        logger.exception("Delete error")
        return _error("Delete failed.", 500)

    logger.info("Deleted %s (id=%s)", removed, file_id)
    return DeleteResponse()


@uploads_router.get("/{file_name}")
async def serve_file(file_name: str):
    """Return the raw bytes of a stored file.

    There is no access control: anyone who knows the name can fetch it.
    """
    try:
        content = _service().read(file_name)
    except StoredFileNotFound:
        return _error("File not found", 404)
    return Response(content=content, media_type=infer_mime_type(stored_extension(file_name)))
