"""Display helpers shared by the upload widget and the preview modal."""
from datetime import datetime
from typing import Union

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    """Format a byte count with 1024-based units.

    Examples:
        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
        >>> format_file_size(10 * 1024 * 1024)
        '10 MB'
    """
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {SIZE_UNITS[unit]}"


def format_date(value: Union[datetime, str]) -> str:
    """Render a timestamp in the local timezone."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def file_icon(mime_type: str) -> str:
    if mime_type.startswith("image/"):
        return "🖼️"
    if mime_type == "application/pdf":
        return "📄"
    if mime_type.startswith("text/"):
        return "📝"
    if "word" in mime_type:
        return "📄"
    return "📁"
