"""Client side of the family share.

HTTP client plus the upload widget and preview modal logic, kept free of any
rendering so front ends (the CLI, a browser bridge, tests) can drive them.
"""
from .api import ApiError, FileShareClient, LocalFile
from .preview import PageBody, PreviewContent, PreviewKind, PreviewModal
from .widget import UploadState, UploadStatus, UploadWidget

__all__ = [
    "ApiError",
    "FileShareClient",
    "LocalFile",
    "PageBody",
    "PreviewContent",
    "PreviewKind",
    "PreviewModal",
    "UploadState",
    "UploadStatus",
    "UploadWidget",
]
