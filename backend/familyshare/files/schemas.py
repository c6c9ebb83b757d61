"""Pydantic schemas for the family file share.

This module defines the data models exchanged over HTTP:
- FileDescriptor: one stored file, rebuilt from storage on every list call
- UploadResponse: API response after a successful upload
- FileListResponse / DeleteResponse / ErrorResponse: the remaining bodies
- FileCategory: Enum for grouping MIME types (image, pdf, text, document, other)

Field names follow the camelCase wire format used by the browser client;
Python code reads and writes the snake_case attribute names.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileCategory(str, Enum):
    """File type categories.

    Files are categorized by MIME type into these groups:
    - IMAGE: JPEG, PNG, GIF, WebP
    - PDF: PDF documents
    - TEXT: plain text and markdown
    - DOCUMENT: legacy and modern Word documents
    - OTHER: everything else
    """
    IMAGE = "image"
    PDF = "pdf"
    TEXT = "text"
    DOCUMENT = "document"
    OTHER = "other"


# File size limit: 10MB
MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

GENERIC_MIME_TYPE = "application/octet-stream"

# Allowed MIME types by category
ALLOWED_MIME_TYPES = {
    FileCategory.IMAGE: [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
    ],
    FileCategory.PDF: [
        "application/pdf",
    ],
    FileCategory.TEXT: [
        "text/plain",
        "text/markdown",
    ],
    FileCategory.DOCUMENT: [
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ],
}

# Extension -> MIME type used when listing; the browser-declared type is not
# what the List Endpoint reports.
_EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "txt": "text/plain",
    "md": "text/plain",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def is_allowed_mime_type(mime_type: Optional[str]) -> bool:
    """Return True if *mime_type* is on the upload allow-list."""
    if not mime_type:
        return False
    return any(mime_type in types for types in ALLOWED_MIME_TYPES.values())


def infer_mime_type(extension: str) -> str:
    """Infer a MIME type from a file extension.

    Args:
        extension: Extension with or without the leading dot (e.g. "png", ".JPG")

    Returns:
        The MIME type, or ``application/octet-stream`` for unknown extensions.

    Examples:
        >>> infer_mime_type("jpg")
        'image/jpeg'
        >>> infer_mime_type("md")
        'text/plain'
        >>> infer_mime_type("zip")
        'application/octet-stream'
    """
    ext = extension.lower().lstrip(".")
    return _EXTENSION_MIME_TYPES.get(ext, GENERIC_MIME_TYPE)


def get_file_category(mime_type: str) -> FileCategory:
    """Determine the category of a MIME type.

    Unknown ``image/*`` and ``text/*`` types still map to IMAGE and TEXT so
    that previews work for types outside the upload allow-list.
    """
    for category, mime_types in ALLOWED_MIME_TYPES.items():
        if mime_type in mime_types:
            return category
    if mime_type.startswith("image/"):
        return FileCategory.IMAGE
    if mime_type.startswith("text/"):
        return FileCategory.TEXT
    if "word" in mime_type:
        return FileCategory.DOCUMENT
    return FileCategory.OTHER


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FileDescriptor(_CamelModel):
    """Metadata for one stored file.

    Never persisted as its own record: the List Endpoint rebuilds it from the
    storage backend on each call.
    """
    id: str = Field(..., min_length=1, description="Generated identifier (stored name before the last '.')")
    file_name: str = Field(..., alias="fileName", description="Name of the file in storage")
    original_name: Optional[str] = Field(None, alias="originalName", description="Name used by the uploader")
    size: int = Field(..., ge=0, description="File size in bytes")
    type: str = Field(..., description="MIME type inferred from the extension")
    uploaded_at: datetime = Field(..., alias="uploadedAt", description="Upload timestamp")
    url: str = Field(..., description="Path the file bytes can be fetched from")

    @property
    def display_name(self) -> str:
        return self.original_name or self.file_name


class UploadResponse(_CamelModel):
    """Response after a successful upload.

    ``type`` is the MIME type declared by the client, which may differ from
    the type later inferred by the List Endpoint.
    """
    id: str = Field(..., description="File ID")
    filename: str = Field(..., description="Stored filename")
    original_name: str = Field(..., alias="originalName", description="Original filename")
    url: str = Field(..., description="URL to fetch the file")
    size: int = Field(..., description="File size in bytes")
    type: str = Field(..., description="Declared MIME type")
    uploaded_at: datetime = Field(..., alias="uploadedAt", description="Upload timestamp")

    def to_descriptor(self) -> FileDescriptor:
        return FileDescriptor(
            id=self.id,
            file_name=self.filename,
            original_name=self.original_name,
            size=self.size,
            type=self.type,
            uploaded_at=self.uploaded_at,
            url=self.url,
        )


class FileListResponse(BaseModel):
    files: List[FileDescriptor] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "File deleted successfully"


class ErrorResponse(BaseModel):
    error: str
