"""Exception hierarchy for image style processing.

Every failure surfaced by this package is a subclass of ImageStylesError, so
callers can catch the whole family at once or pick specific failure modes.
Where it makes sense the exceptions also subclass a builtin (ValueError,
KeyError, LookupError, TimeoutError) for code that already catches those.
"""

from __future__ import annotations

import humanize


class ImageStylesError(Exception):
    """Base class for all image style errors."""


class ConfigError(ImageStylesError, ValueError):
    """Raised when a style or registry definition is invalid."""


class UnsupportedMediaType(ImageStylesError, ValueError):
    """Raised when the declared MIME type is not in the allow-list."""

    def __init__(
        self,
        mime_type: str,
        allowed: frozenset[str] | None = None,
        message: str | None = None,
    ) -> None:
        self.mime_type = mime_type
        self.allowed = allowed or frozenset()
        if message is None:
            message = f"MIME type '{mime_type}' is not allowed"
            if self.allowed:
                message += f" (allowed: {', '.join(sorted(self.allowed))})"
        super().__init__(message)


class ContentMismatchError(UnsupportedMediaType):
    """Raised when content does not match the declared MIME type."""

    def __init__(self, mime_type: str, detail: str) -> None:
        super().__init__(
            mime_type,
            message=f"Content does not match declared MIME type '{mime_type}'. {detail}",
        )


class UploadTooLargeError(ImageStylesError, ValueError):
    """Raised when upload content exceeds the configured maximum size."""

    def __init__(self, max_size: int, actual_size: int) -> None:
        self.max_size = max_size
        self.actual_size = actual_size
        super().__init__(
            f"Upload exceeds maximum size of {humanize.naturalsize(max_size, binary=True)} "
            f"(size: {humanize.naturalsize(actual_size, binary=True)})"
        )


class UnknownStyle(ImageStylesError, KeyError):
    """Raised when a requested style is not present in the registry."""

    def __init__(self, style_name: str, available: tuple[str, ...] = ()) -> None:
        self.style_name = style_name
        self.available = available
        super().__init__(style_name)

    def __str__(self) -> str:
        return f"Unknown style '{self.style_name}' (available: {', '.join(self.available)})"


class NotFound(ImageStylesError, LookupError):
    """Raised when bytes for a storage key are missing."""

    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"No stored object for key '{key}'")


class AttachmentNotFound(NotFound):
    """Raised when no attachment record exists for an identifier."""

    def __init__(self, attachment_id: str) -> None:
        super().__init__(attachment_id, f"Attachment '{attachment_id}' not found")
        self.attachment_id = attachment_id


class ImageDecodeError(ImageStylesError):
    """Base class for decode failures. Permanent for the given source."""


class UnsupportedFormat(ImageDecodeError):
    """Raised when the codec does not recognise the image format."""


class CorruptImage(ImageDecodeError):
    """Raised when the image is recognised but cannot be decoded."""


class EncodeError(ImageStylesError):
    """Raised when a processed image cannot be encoded."""


class StorageError(ImageStylesError):
    """Base class for transient storage infrastructure failures."""


class StorageWriteError(StorageError):
    """Raised when a backend fails to write or delete bytes."""


class StorageReadError(StorageError):
    """Raised when a backend fails to read bytes or check existence."""


class GenerationTimeout(ImageStylesError, TimeoutError):
    """Raised when a caller stops waiting for an in-flight generation.

    The generation itself is not cancelled while other callers wait on it.
    """

    def __init__(self, attachment_id: str, style_name: str, timeout: float) -> None:
        self.attachment_id = attachment_id
        self.style_name = style_name
        self.timeout = timeout
        super().__init__(
            f"Gave up waiting {timeout}s for style '{style_name}' of attachment '{attachment_id}'"
        )
