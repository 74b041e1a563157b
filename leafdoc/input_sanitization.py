"""
Input Sanitization Module for Leafdoc AI Service

Cleans client text before it reaches a prompt and checks uploaded images
before they are sent to Gemini.
"""

import io
import re
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .errors import InvalidRequestError

MAX_MESSAGE_LENGTH = 5000
MAX_LANGUAGE_LENGTH = 32

# Formats Gemini accepts as inline image data
ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/heic",
    "image/heif",
}

# Accepted formats Pillow has no decoder for; these are trusted by declared type
DECLARED_ONLY_TYPES = {"image/heic", "image/heif"}

# Non-standard names some clients send
_CONTENT_TYPE_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}


def sanitize_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """Sanitize text input.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length (truncates if exceeded)

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = _remove_control_chars(text.strip())

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_message(text: Optional[str]) -> str:
    """Sanitize a chat message.

    Raises:
        InvalidRequestError: the message is longer than MAX_MESSAGE_LENGTH.
    """
    message = sanitize_text(text)
    if len(message) > MAX_MESSAGE_LENGTH:
        raise InvalidRequestError(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")
    return message


def sanitize_language(text: Optional[str], default: str = "en") -> str:
    """Sanitize the advisory response language. Blank means the default."""
    language = sanitize_text(text, max_length=MAX_LANGUAGE_LENGTH)
    language = re.sub(r'[^\w\s\-]', '', language).strip()
    return language or default


def sanitize_filename(filename: Optional[str]) -> str:
    """Reduce an upload filename to a safe basename for logging."""
    if not filename:
        return "unnamed"

    filename = filename.replace("\\", "/").split("/")[-1]
    filename = re.sub(r'[<>:"/\\|?*]', '_', filename)
    filename = _remove_control_chars(filename)
    filename = re.sub(r'^\.+', '', filename)

    return filename[:255] or "unnamed"


def _remove_control_chars(text: str) -> str:
    """Remove potentially dangerous control characters."""
    return re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)


def validate_image_type(content_type: str) -> bool:
    """Validate image content type."""
    return content_type.lower() in ALLOWED_IMAGE_TYPES


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lowercase a declared content type and drop parameters like charset."""
    if not content_type:
        return ""
    base = content_type.split(";", 1)[0].strip().lower()
    return _CONTENT_TYPE_ALIASES.get(base, base)


def detect_image_type(image_bytes: bytes, declared_type: Optional[str] = None) -> str:
    """Decode the image header with Pillow and return its MIME type.

    When Pillow can read the bytes, they decide the type and the declared
    one is ignored. Pillow has no HEIC/HEIF decoder, so bytes it cannot
    identify are forwarded under the client's declared type when that type
    is one of DECLARED_ONLY_TYPES.

    Raises:
        InvalidRequestError: the bytes are not a readable image and were
            not declared as HEIC/HEIF, or the decoded format is
            not one Gemini accepts.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.verify()
            image_format = image.format
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        declared = normalize_content_type(declared_type)
        if declared in DECLARED_ONLY_TYPES:
            return declared
        raise InvalidRequestError("Failed to read image") from e

    mime_type = Image.MIME.get(image_format or "", "")
    if not validate_image_type(mime_type):
        raise InvalidRequestError(f"Unsupported image type: {mime_type or image_format or 'unknown'}")
    return mime_type
