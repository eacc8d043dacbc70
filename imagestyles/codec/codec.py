"""Codec interface and resize geometry.

The processor only talks to image libraries through the Codec protocol.
Geometry is computed here, in integer arithmetic, so every codec produces
the same dimensions for the same style.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from imagestyles.styles import StyleMode, StyleSpec


@dataclass(frozen=True)
class RawImage:
    """A decoded image.

    Attributes:
        pixels: Codec-specific pixel buffer, opaque to the processor.
        width: Width in pixels.
        height: Height in pixels.
        format: Container format the image was decoded from (e.g. 'JPEG').
            Encoding uses it so derivatives keep the source format.
    """

    pixels: Any
    width: int
    height: int
    format: str


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Dimensions of (width, height) shrunk to fit inside (max_width, max_height).

    Aspect ratio is preserved, the limiting side lands exactly on its bound and
    the other side is rounded down. Images that already fit are returned as is.
    """
    if width <= max_width and height <= max_height:
        return width, height

    # Compare max_width / width with max_height / height without floats
    if max_width * height <= max_height * width:
        return max_width, max(1, height * max_width // width)
    return max(1, width * max_height // height), max_height


def cover_size(width: int, height: int, min_width: int, min_height: int) -> tuple[int, int]:
    """Smallest aspect-preserving size of (width, height) covering (min_width, min_height)."""
    if min_width * height >= min_height * width:
        return min_width, max(min_height, -(-height * min_width // width))
    return max(min_width, -(-width * min_height // height)), min_height


def target_size(width: int, height: int, spec: StyleSpec) -> tuple[int, int]:
    """Final dimensions of a (width, height) image resized for spec."""
    if spec.mode is StyleMode.BOUNDING_BOX:
        return fit_within(width, height, spec.target_width, spec.target_height)
    return spec.target_width, spec.target_height


class Codec(Protocol):
    """Protocol for image codecs.

    decode() and encode() translate library errors into UnsupportedFormat,
    CorruptImage and EncodeError.
    """

    def decode(self, content: bytes) -> RawImage: ...

    def normalize(self, image: RawImage) -> RawImage: ...

    def resize(self, image: RawImage, spec: StyleSpec) -> RawImage: ...

    def encode(self, image: RawImage, format: str | None = None) -> bytes: ...
