"""MIME type validation for uploads.

Two checks run before anything is persisted or decoded:

- validate_mime_type() matches the declared type against the configured
  allow-list. Pure, no I/O.
- validate_content_mime_type() confirms the declared type against the
  content's magic bytes using puremagic, which stops a non-image from being
  uploaded under an image MIME type.

Example:
    >>> from imagestyles.mime_validation import validate_mime_type
    >>> validate_mime_type("image/png", frozenset({"image/png", "image/jpeg"}))
    # Passes silently if allowed, raises UnsupportedMediaType if not
"""

from __future__ import annotations

import logging

import puremagic

from imagestyles.errors import ContentMismatchError, UnsupportedMediaType

logger = logging.getLogger(__name__)


DEFAULT_ALLOWED_MIME_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
    }
)

# Declared types mapped to alternative types that puremagic may report for the same format
MIME_TYPE_EQUIVALENCES: dict[str, set[str]] = {
    "image/jpeg": {"image/jpg", "image/pjpeg"},
    "image/bmp": {"image/x-ms-bmp"},
    "image/tiff": {"image/tif"},
}


def validate_mime_type(mime_type: str, allowed_mime_types: frozenset[str]) -> None:
    """Check the declared MIME type against the allow-list.

    Matching is exact and case-sensitive.

    Args:
        mime_type: The declared MIME type.
        allowed_mime_types: Canonical MIME types accepted for upload.

    Raises:
        UnsupportedMediaType: If the declared type is empty, malformed or not allowed.
    """
    if not mime_type or "/" not in mime_type:
        raise UnsupportedMediaType(
            mime_type,
            allowed_mime_types,
            message=(
                f"Invalid MIME type format '{mime_type}'. "
                f"MIME type must be in 'type/subtype' format (e.g., 'image/png')."
            ),
        )

    if mime_type not in allowed_mime_types:
        raise UnsupportedMediaType(mime_type, allowed_mime_types)


def validate_content_mime_type(content: bytes, mime_type: str) -> None:
    """Validate that content matches the declared MIME type using magic bytes.

    Args:
        content: The binary content to validate.
        mime_type: The declared (and already allowed) MIME type.

    Raises:
        ContentMismatchError: If the content is empty, unidentifiable or of another type.
    """
    if not content:
        raise ContentMismatchError(mime_type, "Content is empty.")

    try:
        detected = puremagic.magic_string(content)
    except puremagic.PureError as e:
        raise ContentMismatchError(mime_type, "Could not identify file type from content.") from e

    detected_mimes = {m.mime_type for m in detected if m.mime_type}
    logger.debug("Detected MIME types %s for declared type '%s'", detected_mimes, mime_type)

    if mime_type in detected_mimes:
        return

    equivalent_types = MIME_TYPE_EQUIVALENCES.get(mime_type, set())
    if detected_mimes & equivalent_types:
        return

    raise ContentMismatchError(mime_type, f"Detected types: {sorted(detected_mimes)}")
