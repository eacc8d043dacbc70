"""Pillow implementation of the Codec protocol."""

from __future__ import annotations

import io
import logging
from typing import Any

from PIL import Image, ImageCms, ImageOps, UnidentifiedImageError

from imagestyles.codec.codec import RawImage, cover_size, target_size
from imagestyles.errors import CorruptImage, EncodeError, UnsupportedFormat
from imagestyles.styles import StyleMode, StyleSpec

logger = logging.getLogger(__name__)

# Modes kept as is by normalize(); everything else is converted to one of them
CANONICAL_MODES = ("RGB", "RGBA")

# EXIF tag holding the orientation, cleared by ImageOps.exif_transpose
_ORIENTATION_TAG = 0x0112

_LOSSY_FORMATS = {"JPEG", "WEBP"}

_SRGB_PROFILE = ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB"))


class PillowCodec:
    """Decode, normalize, resize and encode images with Pillow.

    Args:
        quality: Encoder quality for lossy formats.
        resample: Resampling filter used for resizing.
    """

    def __init__(
        self,
        quality: int = 85,
        resample: Image.Resampling = Image.Resampling.LANCZOS,
    ) -> None:
        self.quality = quality
        self.resample = resample

    def decode(self, content: bytes) -> RawImage:
        try:
            img = Image.open(io.BytesIO(content))
        except UnidentifiedImageError as e:
            raise UnsupportedFormat(f"Unrecognised image format: {e}") from e
        except (Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise CorruptImage(f"Cannot open image: {e}") from e

        image_format = img.format
        try:
            img.load()
        except (Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise CorruptImage(f"Cannot decode {image_format} image: {e}") from e

        if image_format is None:
            raise UnsupportedFormat("Image format could not be determined")

        return RawImage(pixels=img, width=img.width, height=img.height, format=image_format)

    def normalize(self, image: RawImage) -> RawImage:
        """Rotate upright according to EXIF orientation and convert to sRGB.

        Alpha-bearing images end up in RGBA, everything else in RGB. Applying
        normalize() to its own output changes nothing.
        """
        img: Image.Image = image.pixels
        changed = False

        if img.getexif().get(_ORIENTATION_TAG, 1) != 1:
            img = ImageOps.exif_transpose(img)
            changed = True

        icc_profile = img.info.get("icc_profile")
        if icc_profile:
            img = self._to_srgb(img, icc_profile)
            changed = True

        if img.mode not in CANONICAL_MODES:
            img = img.convert("RGBA" if _has_alpha(img) else "RGB")
            changed = True

        if not changed:
            return image
        return RawImage(pixels=img, width=img.width, height=img.height, format=image.format)

    def resize(self, image: RawImage, spec: StyleSpec) -> RawImage:
        img: Image.Image = image.pixels
        width, height = target_size(image.width, image.height, spec)
        if (width, height) == (image.width, image.height):
            return image

        if spec.mode is StyleMode.CROP:
            img = self._cover_and_crop(img, width, height)
        else:
            img = img.resize((width, height), resample=self.resample)
        return RawImage(pixels=img, width=img.width, height=img.height, format=image.format)

    def encode(self, image: RawImage, format: str | None = None) -> bytes:
        img: Image.Image = image.pixels
        target_format = (format or image.format).upper()
        save_kwargs: dict[str, Any] = {}
        if target_format in _LOSSY_FORMATS:
            save_kwargs.update({"quality": self.quality})
        if target_format in {"JPEG", "PNG"}:
            save_kwargs["optimize"] = True
        if target_format == "JPEG" and img.mode == "RGBA":
            img = img.convert("RGB")

        output = io.BytesIO()
        try:
            img.save(output, format=target_format, **save_kwargs)
        except (KeyError, OSError, ValueError) as e:
            raise EncodeError(f"Cannot encode image as {target_format}: {e}") from e
        return output.getvalue()

    def _cover_and_crop(self, img: Image.Image, width: int, height: int) -> Image.Image:
        cover_width, cover_height = cover_size(img.width, img.height, width, height)
        img = img.resize((cover_width, cover_height), resample=self.resample)
        left = (cover_width - width) // 2
        top = (cover_height - height) // 2
        return img.crop((left, top, left + width, top + height))

    @staticmethod
    def _to_srgb(img: Image.Image, icc_profile: bytes) -> Image.Image:
        """Convert an image with an embedded ICC profile to sRGB and drop the profile."""
        output_mode = "RGBA" if _has_alpha(img) else "RGB"
        if img.mode not in ("RGB", "RGBA", "CMYK", "L"):
            img = img.convert(output_mode)
        try:
            source_profile = ImageCms.ImageCmsProfile(io.BytesIO(icc_profile))
            converted = ImageCms.profileToProfile(
                img, source_profile, _SRGB_PROFILE, outputMode=output_mode
            )
        except (ImageCms.PyCMSError, OSError) as e:
            raise CorruptImage(f"Invalid embedded color profile: {e}") from e
        assert converted is not None
        converted.info.pop("icc_profile", None)
        return converted


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)
