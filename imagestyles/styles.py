"""Style definitions and the style registry.

A style is a named target size with a resize mode. Styles are usually
configured with the familiar geometry strings::

    mini: "48x48>"      # shrink to fit, never enlarge
    banner: "1200x300#" # cover and centre-crop
    icon: "32x32!"      # exact size, aspect ratio ignored

The registry keeps a live, immutable snapshot that readers resolve against.
Edits go to a staging copy and become visible all at once on publish().
"""

from __future__ import annotations

import logging
import re
import threading
import typing as t
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from imagestyles.errors import ConfigError, UnknownStyle

logger = logging.getLogger(__name__)

# Storage key suffix of the source image, see models.original_key()
RESERVED_STYLE_NAMES = frozenset({"original"})

_STYLE_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_GEOMETRY_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*([>!#]?)\s*$")


class StyleMode(Enum):
    """How a source image is fitted to a style's target size.

    Values:
        BOUNDING_BOX: Shrink to fit inside the box preserving aspect ratio. Never enlarges.
        EXACT: Resize to exactly the target size, ignoring aspect ratio.
        CROP: Scale to cover the box preserving aspect ratio, then centre-crop.
    """

    BOUNDING_BOX = ">"
    EXACT = "!"
    CROP = "#"


class StyleSpec(BaseModel):
    """Target size and mode of a single style.

    Attributes:
        name: Style identifier, unique within a registry.
        target_width: Target width in pixels.
        target_height: Target height in pixels.
        mode: Resize mode.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    target_width: int = Field(gt=0)
    target_height: int = Field(gt=0)
    mode: StyleMode = StyleMode.BOUNDING_BOX

    @property
    def geometry(self) -> str:
        """Geometry string of this spec, e.g. ``48x48>``."""
        return f"{self.target_width}x{self.target_height}{self.mode.value}"

    @classmethod
    def parse(cls, name: str, geometry: str) -> "StyleSpec":
        """Build a spec from a geometry string.

        A missing suffix means BOUNDING_BOX.

        Raises:
            ConfigError: If the geometry string is malformed or has zero dimensions.
        """
        match = _GEOMETRY_RE.match(geometry)
        if match is None:
            raise ConfigError(
                f"Invalid geometry '{geometry}' for style '{name}'. "
                f"Expected WIDTHxHEIGHT with an optional '>', '!' or '#' suffix."
            )
        width, height, suffix = match.groups()
        if int(width) <= 0 or int(height) <= 0:
            raise ConfigError(f"Style '{name}' must have positive dimensions, got '{geometry}'")
        return cls(
            name=name,
            target_width=int(width),
            target_height=int(height),
            mode=StyleMode(suffix or StyleMode.BOUNDING_BOX.value),
        )


def validate_style_name(name: str) -> str:
    """Check that a style name is usable as a storage key component."""
    if not name or not _STYLE_NAME_RE.match(name):
        raise ConfigError(
            f"Invalid style name '{name}'. Use letters, digits, '_' and '-' only."
        )
    if name in RESERVED_STYLE_NAMES:
        raise ConfigError(f"Style name '{name}' is reserved")
    return name


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of the registry at one point in time."""

    styles: t.Mapping[str, StyleSpec]
    default_style: str
    fallback_to_default: bool = field(default=False)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self.styles)

    def resolve(self, style_name: str | None = None) -> StyleSpec:
        """Resolve a style name to its spec.

        Args:
            style_name: Style to resolve. None or empty resolves the default style.

        Returns:
            The matching StyleSpec.

        Raises:
            UnknownStyle: If the style is not registered and fallback is disabled.
        """
        if not style_name:
            return self.styles[self.default_style]

        spec = self.styles.get(style_name)
        if spec is not None:
            return spec

        if self.fallback_to_default:
            logger.warning(
                "Unknown style '%s', falling back to default style '%s'",
                style_name,
                self.default_style,
            )
            return self.styles[self.default_style]

        raise UnknownStyle(style_name, self.names)


def _freeze(
    styles: t.Mapping[str, StyleSpec], default_style: str, fallback_to_default: bool
) -> RegistrySnapshot:
    if not styles:
        raise ConfigError("Style registry cannot be empty")
    if default_style not in styles:
        raise ConfigError(
            f"Default style '{default_style}' is not one of: {', '.join(styles)}"
        )
    return RegistrySnapshot(
        styles=MappingProxyType(dict(styles)),
        default_style=default_style,
        fallback_to_default=fallback_to_default,
    )


class StyleRegistry:
    """Mapping of style names to specs with a default style.

    Readers call resolve() or snapshot() and always see a consistent,
    fully published state. register() and set_default() only touch the
    staging copy; publish() swaps it in as the new live snapshot.
    """

    def __init__(
        self,
        styles: t.Mapping[str, StyleSpec],
        default_style: str,
        fallback_to_default: bool = False,
    ) -> None:
        for name, spec in styles.items():
            self._check_entry(name, spec)
        self._live = _freeze(styles, default_style, fallback_to_default)
        self._staging: dict[str, StyleSpec] = dict(styles)
        self._staging_default = default_style
        self._fallback_to_default = fallback_to_default
        self._staging_lock = threading.Lock()

    @classmethod
    def from_geometries(
        cls,
        geometries: t.Mapping[str, str],
        default_style: str,
        fallback_to_default: bool = False,
    ) -> "StyleRegistry":
        """Build a registry from a name -> geometry string mapping."""
        styles = {name: StyleSpec.parse(name, geometry) for name, geometry in geometries.items()}
        return cls(styles, default_style, fallback_to_default)

    @staticmethod
    def _check_entry(name: str, spec: StyleSpec) -> None:
        validate_style_name(name)
        if spec.name != name:
            raise ConfigError(f"Style registered as '{name}' is named '{spec.name}'")

    @property
    def default_style(self) -> str:
        return self._live.default_style

    @property
    def names(self) -> tuple[str, ...]:
        return self._live.names

    def snapshot(self) -> RegistrySnapshot:
        """Return the current live snapshot."""
        return self._live

    def resolve(self, style_name: str | None = None) -> StyleSpec:
        """Resolve against the live snapshot. See RegistrySnapshot.resolve()."""
        return self._live.resolve(style_name)

    def register(self, name: str, spec: StyleSpec) -> None:
        """Add or replace a style in the staging copy."""
        self._check_entry(name, spec)
        with self._staging_lock:
            self._staging[name] = spec

    def unregister(self, name: str) -> None:
        """Remove a style from the staging copy."""
        with self._staging_lock:
            if name not in self._staging:
                raise UnknownStyle(name, tuple(self._staging))
            del self._staging[name]

    def set_default(self, name: str) -> None:
        """Set the default style of the staging copy.

        The name is checked on publish(), so a style can be registered after
        it was made the default.
        """
        with self._staging_lock:
            self._staging_default = name

    def publish(self) -> RegistrySnapshot:
        """Atomically replace the live snapshot with the staging copy.

        Raises:
            ConfigError: If the staging copy is empty or its default style is missing.
                The live snapshot is left untouched.
        """
        with self._staging_lock:
            snapshot = _freeze(self._staging, self._staging_default, self._fallback_to_default)
            self._live = snapshot
        logger.info(
            "Published style registry: %d style(s), default '%s'",
            len(snapshot.styles),
            snapshot.default_style,
        )
        return snapshot

    def replace(self, other: "StyleRegistry") -> None:
        """Swap in another registry's live snapshot and reset staging to it."""
        snapshot = other.snapshot()
        with self._staging_lock:
            self._staging = dict(snapshot.styles)
            self._staging_default = snapshot.default_style
            self._fallback_to_default = snapshot.fallback_to_default
            self._live = snapshot
