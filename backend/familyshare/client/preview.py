"""Preview modal logic.

Decides how a selected file is shown (inline image, embedded PDF, fetched
text, or a download fallback), handles the modal's keyboard bindings and
suppresses background scrolling while open.  Rendering is left to the front
end; everything here is plain state that can be driven from tests.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from familyshare.files.schemas import FileCategory, FileDescriptor, get_file_category

from .api import ApiError, FileShareClient
from .formatting import file_icon, format_date, format_file_size

logger = logging.getLogger(__name__)

TEXT_LOAD_ERROR = "Failed to load file content"


class PreviewKind(str, Enum):
    IMAGE = "image"
    PDF = "pdf"
    TEXT = "text"
    UNSUPPORTED = "unsupported"


@dataclass
class PreviewContent:
    """What the modal body shows for the current file."""
    kind: PreviewKind
    title: str
    url: str
    icon: str
    text: Optional[str] = None
    loading: bool = False
    error: Optional[str] = None

    @property
    def download_url(self) -> str:
        return self.url


class PageBody:
    """The page behind the modal.  Only its scroll style matters here."""

    def __init__(self) -> None:
        self.overflow = "unset"


def preview_kind(mime_type: str) -> PreviewKind:
    category = get_file_category(mime_type)
    if category == FileCategory.IMAGE:
        return PreviewKind.IMAGE
    if category == FileCategory.PDF:
        return PreviewKind.PDF
    if category == FileCategory.TEXT:
        return PreviewKind.TEXT
    return PreviewKind.UNSUPPORTED


class PreviewModal:
    """Full-size viewer for one file with previous/next navigation.

    Keyboard bindings only act while the modal is open:
    - Escape closes it
    - ArrowLeft / ArrowRight call the navigation callbacks, when given

    The page's scroll is locked while open and restored on every way out:
    ``close()``, ``dispose()`` and leaving a ``with`` block.
    """

    def __init__(
        self,
        client: FileShareClient,
        page: Optional[PageBody] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._client = client
        self.page = page or PageBody()
        self._on_close = on_close

        self.is_open = False
        self.file: Optional[FileDescriptor] = None
        self.on_next: Optional[Callable[[], None]] = None
        self.on_previous: Optional[Callable[[], None]] = None
        self.current_index: Optional[int] = None
        self.total_files: Optional[int] = None

        self._text: Optional[str] = None
        self._text_loading = False
        self._text_error: Optional[str] = None

    def __enter__(self) -> "PreviewModal":
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()

    # -----------------------------------------------------------------------
    # Open / close
    # -----------------------------------------------------------------------

    def open(
        self,
        file: FileDescriptor,
        on_next: Optional[Callable[[], None]] = None,
        on_previous: Optional[Callable[[], None]] = None,
        current_index: Optional[int] = None,
        total_files: Optional[int] = None,
    ) -> None:
        self.file = file
        self.on_next = on_next
        self.on_previous = on_previous
        self.current_index = current_index
        self.total_files = total_files
        self.is_open = True
        self.page.overflow = "hidden"

        self._text = None
        self._text_error = None
        if preview_kind(file.type) == PreviewKind.TEXT:
            self._load_text(file)

    def close(self) -> None:
        was_open = self.is_open
        self.is_open = False
        self.page.overflow = "unset"
        if was_open and self._on_close is not None:
            self._on_close()

    def dispose(self) -> None:
        """Tear down without notifying anyone; always unlocks the page."""
        self.is_open = False
        self.page.overflow = "unset"

    def _load_text(self, file: FileDescriptor) -> None:
        self._text_loading = True
        try:
            self._text = self._client.fetch_text(file.url)
        except ApiError as e:
            logger.warning("Could not load %s for preview: %s", file.url, e)
            self._text_error = TEXT_LOAD_ERROR
        finally:
            self._text_loading = False

    # -----------------------------------------------------------------------
    # Keyboard
    # -----------------------------------------------------------------------

    def handle_key(self, key: str) -> bool:
        """Apply a key press.  Returns True if the key did something."""
        if not self.is_open:
            return False
        if key == "Escape":
            self.close()
            return True
        if key == "ArrowLeft" and self.on_previous is not None:
            self.on_previous()
            return True
        if key == "ArrowRight" and self.on_next is not None:
            self.on_next()
            return True
        return False

    # -----------------------------------------------------------------------
    # Rendering state
    # -----------------------------------------------------------------------

    def content(self) -> Optional[PreviewContent]:
        """Describe the modal body, or None while closed."""
        if not self.is_open or self.file is None:
            return None

        kind = preview_kind(self.file.type)
        content = PreviewContent(
            kind=kind,
            title=self.file.display_name,
            url=self.file.url,
            icon=file_icon(self.file.type),
        )
        if kind == PreviewKind.TEXT:
            content.text = self._text
            content.loading = self._text_loading
            content.error = self._text_error
        return content

    def position(self) -> Optional[str]:
        if self.current_index is None or not self.total_files:
            return None
        return f"{self.current_index + 1} of {self.total_files}"

    def header(self) -> Optional[str]:
        """One-line summary shown above the preview."""
        if not self.is_open or self.file is None:
            return None
        parts = [
            self.file.display_name,
            format_file_size(self.file.size),
            format_date(self.file.uploaded_at),
        ]
        position = self.position()
        if position:
            parts.append(position)
        return " • ".join(parts)
