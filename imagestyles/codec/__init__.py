"""Image codecs.

Example:
    >>> from imagestyles.codec import PillowCodec
    >>> codec = PillowCodec(quality=85)
    >>> image = codec.normalize(codec.decode(jpeg_bytes))
"""

from imagestyles.codec.codec import Codec, RawImage, cover_size, fit_within, target_size
from imagestyles.codec.pillow_codec import PillowCodec

__all__ = [
    "Codec",
    "PillowCodec",
    "RawImage",
    "cover_size",
    "fit_within",
    "target_size",
]
