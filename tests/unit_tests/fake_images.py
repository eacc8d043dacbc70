"""Helpers and fakes shared by the unit tests."""

import io
import threading
from typing import Any

from PIL import Image

from imagestyles.codec.codec import RawImage
from imagestyles.codec.pillow_codec import PillowCodec
from imagestyles.styles import StyleSpec

# EXIF orientation "rotate 90 CW to display upright"
ORIENTATION_ROTATE_90 = 6


def make_image_bytes(
    width: int,
    height: int,
    format: str = "JPEG",
    mode: str = "RGB",
    orientation: int | None = None,
    color: Any = None,
) -> bytes:
    """Encode a solid image of the given size."""
    if color is None:
        color = {"RGB": (200, 40, 40), "RGBA": (200, 40, 40, 128), "LA": (90, 128)}.get(mode, 128)
    img = Image.new(mode, (width, height), color)
    save_kwargs: dict[str, Any] = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = orientation
        save_kwargs["exif"] = exif.tobytes()
    output = io.BytesIO()
    img.save(output, format=format, **save_kwargs)
    return output.getvalue()


def image_size(content: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(content)) as img:
        return img.size


def image_format(content: bytes) -> str | None:
    with Image.open(io.BytesIO(content)) as img:
        return img.format


class CountingCodec:
    """PillowCodec wrapper counting calls, optionally blocking in decode.

    Set `gate` to a threading.Event to hold every decode until it is set.
    """

    def __init__(self, codec: PillowCodec | None = None) -> None:
        self.codec = codec or PillowCodec()
        self.calls: dict[str, int] = {"decode": 0, "normalize": 0, "resize": 0, "encode": 0}
        self.gate: threading.Event | None = None
        self.decode_started = threading.Event()
        self._lock = threading.Lock()

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def decode(self, content: bytes) -> RawImage:
        self._count("decode")
        self.decode_started.set()
        if self.gate is not None:
            self.gate.wait(timeout=10)
        return self.codec.decode(content)

    def normalize(self, image: RawImage) -> RawImage:
        self._count("normalize")
        return self.codec.normalize(image)

    def resize(self, image: RawImage, spec: StyleSpec) -> RawImage:
        self._count("resize")
        return self.codec.resize(image, spec)

    def encode(self, image: RawImage, format: str | None = None) -> bytes:
        self._count("encode")
        return self.codec.encode(image, format)
