"""Named, resized derivatives ("styles") of uploaded images.

Example:
    >>> from imagestyles import Config, ImageStyles
    >>> config = Config.model_validate(
    ...     {"STYLES": {"mini": "48x48>", "product": "680x680>"}, "DEFAULT_STYLE": "product"}
    ... )
    >>> with ImageStyles.from_config(config) as images:
    ...     record = images.upload(jpeg_bytes, "image/jpeg")
    ...     mini = images.variant(record.id, "mini")
    ...     product = images.variant(record.id)
"""

from imagestyles.config import Config
from imagestyles.engine import ImageStyles
from imagestyles.errors import (
    AttachmentNotFound,
    ConfigError,
    ContentMismatchError,
    CorruptImage,
    EncodeError,
    GenerationTimeout,
    ImageDecodeError,
    ImageStylesError,
    NotFound,
    StorageError,
    StorageReadError,
    StorageWriteError,
    UnknownStyle,
    UnsupportedFormat,
    UnsupportedMediaType,
    UploadTooLargeError,
)
from imagestyles.models import AttachmentRecord, VariantEntry, VariantResult
from imagestyles.styles import StyleMode, StyleRegistry, StyleSpec

__all__ = [
    "AttachmentNotFound",
    "AttachmentRecord",
    "Config",
    "ConfigError",
    "ContentMismatchError",
    "CorruptImage",
    "EncodeError",
    "GenerationTimeout",
    "ImageDecodeError",
    "ImageStyles",
    "ImageStylesError",
    "NotFound",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "StyleMode",
    "StyleRegistry",
    "StyleSpec",
    "UnknownStyle",
    "UnsupportedFormat",
    "UnsupportedMediaType",
    "UploadTooLargeError",
    "VariantEntry",
    "VariantResult",
]
