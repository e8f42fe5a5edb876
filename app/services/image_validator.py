"""Validate and encode pill images before they are analyzed or stored."""
import base64
import mimetypes

from app.config import settings
from app.utils.exceptions import AppException


class ImageRejected(AppException):
    """Base for images refused before any network call."""


class InvalidFileType(ImageRejected):
    def __init__(self, content_type: str | None):
        super().__init__(
            f"Invalid file type: {content_type or 'unknown'}. Please select an image file.",
            status_code=400,
        )
        self.content_type = content_type


class FileTooLarge(ImageRejected):
    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"File too large: {size / (1024 * 1024):.1f} MB. "
            f"Maximum size is {max_size // (1024 * 1024)} MB.",
            status_code=400,
        )
        self.size = size
        self.max_size = max_size


def resolve_mime_type(filename: str | None, content_type: str | None) -> str | None:
    """Explicit content type wins; otherwise guess from the file name."""
    if content_type and content_type != "application/octet-stream":
        return content_type.split(";", 1)[0].strip().lower()
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        return guessed
    return None


def validate_image(
    filename: str | None,
    content_type: str | None,
    size: int,
    max_size: int | None = None,
) -> str:
    """Check type and size of an image; return its resolved MIME type.

    Raises InvalidFileType or FileTooLarge.
    """
    if max_size is None:
        max_size = settings.max_image_size_bytes

    mime = resolve_mime_type(filename, content_type)
    if not mime or not mime.startswith("image/"):
        raise InvalidFileType(mime or content_type)
    if size > max_size:
        raise FileTooLarge(size, max_size)
    return mime


def encode_data_url(content: bytes, mime: str) -> str:
    b64 = base64.b64encode(content).decode("utf-8")
    return f"data:{mime};base64,{b64}"
