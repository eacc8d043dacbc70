"""Configuration module for imagestyles.

This module defines all configuration models and parsing logic. A minimal
YAML configuration looks like::

    STYLES:
      mini: "48x48>"
      product: "680x680>"
    DEFAULT_STYLE: product
    STORAGE:
      TYPE: local_storage
      ROOT: /var/lib/imagestyles
      BASE_URL: https://cdn.example.com/images
"""

import sys
import typing as t

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from imagestyles.mime_validation import DEFAULT_ALLOWED_MIME_TYPES
from imagestyles.storage.storage import StorageConfig
from imagestyles.storage.storage_loader import parse_storage_config
from imagestyles.styles import StyleMode, StyleRegistry, StyleSpec, validate_style_name

# Default maximum upload size: 10MB
DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024


class StrictBaseModel(BaseModel):
    """Base model with immutable (frozen) configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class StyleConfig(StrictBaseModel):
    """Mapping form of a style definition.

    Attributes:
        width: Target width in pixels
        height: Target height in pixels
        mode: Resize mode, one of '>', '!' or '#' (or BOUNDING_BOX, EXACT, CROP)
    """

    width: int = Field(alias="WIDTH", gt=0)
    height: int = Field(alias="HEIGHT", gt=0)
    mode: StyleMode = Field(default=StyleMode.BOUNDING_BOX, alias="MODE")

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v: t.Any) -> t.Any:
        """Accept mode names as well as geometry suffixes."""
        if isinstance(v, str) and v.upper() in StyleMode.__members__:
            return StyleMode[v.upper()]
        return v


class TelemetryConfig(StrictBaseModel):
    """OpenTelemetry configuration for generation tracing.

    Attributes:
        enabled: Enable or disable telemetry tracing
        endpoint: OTLP endpoint URL (e.g., http://localhost:4317 or Cloud Trace URL)
        console_export: Export traces to console for debugging
        timeout: Timeout in seconds for exporter (default: 10)
        deployment_environment: Deployment environment (e.g., production, staging, dev)
        service_instance_id: Service instance ID (auto-generated if not provided)
    """

    enabled: bool = Field(default=False, alias="ENABLED")
    endpoint: t.Optional[str] = Field(default=None, alias="ENDPOINT")
    console_export: bool = Field(default=False, alias="CONSOLE_EXPORT")
    timeout: int = Field(default=10, alias="TIMEOUT", gt=0)
    deployment_environment: t.Optional[str] = Field(default=None, alias="DEPLOYMENT_ENVIRONMENT")
    service_instance_id: t.Optional[str] = Field(default=None, alias="SERVICE_INSTANCE_ID")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: t.Optional[str]) -> t.Optional[str]:
        """Validate endpoint URL format."""
        if v is None:
            return v

        from urllib.parse import urlparse

        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Invalid endpoint: '{v}'. Must be http(s)://host[:port]")

        return v


class Config(StrictBaseModel):
    """Main configuration.

    Attributes:
        app_name: Service name reported by telemetry
        styles: Style name to geometry string (e.g. '48x48>') or StyleConfig
        default_style: Style used when none is requested, must be one of styles
        allowed_mime_types: MIME types accepted for upload
        fallback_to_default_style: Resolve unknown style names to the default style
            instead of raising UnknownStyle
        eager_styles: Styles generated right after upload
        validate_content: Check upload content against the declared MIME type
        max_upload_size: Maximum upload size in bytes
        max_workers: Size of the generation worker pool
        generation_timeout: Default seconds a caller waits for a generation
        jpeg_quality: Encoder quality for lossy formats
        storage: Storage backend configuration
        repository_path: JSON file persisting attachment records, in memory if None
        telemetry: OpenTelemetry configuration
    """

    app_name: str = Field(default="imagestyles", alias="APP_NAME")
    styles: dict[str, t.Union[str, StyleConfig]] = Field(alias="STYLES")
    default_style: str = Field(alias="DEFAULT_STYLE")
    allowed_mime_types: frozenset[str] = Field(
        default=DEFAULT_ALLOWED_MIME_TYPES, alias="ALLOWED_MIME_TYPES"
    )
    fallback_to_default_style: bool = Field(default=False, alias="FALLBACK_TO_DEFAULT_STYLE")
    eager_styles: tuple[str, ...] = Field(default=(), alias="EAGER_STYLES")
    validate_content: bool = Field(default=True, alias="VALIDATE_CONTENT")
    max_upload_size: int = Field(default=DEFAULT_MAX_UPLOAD_SIZE, alias="MAX_UPLOAD_SIZE", gt=0)
    max_workers: int = Field(default=4, alias="MAX_WORKERS", gt=0)
    generation_timeout: t.Optional[float] = Field(
        default=None, alias="GENERATION_TIMEOUT", gt=0
    )
    jpeg_quality: int = Field(default=85, alias="JPEG_QUALITY", ge=1, le=95)
    storage: StorageConfig = Field(
        default_factory=lambda: parse_storage_config({"TYPE": "memory_storage"}), alias="STORAGE"
    )
    repository_path: t.Optional[str] = Field(default=None, alias="REPOSITORY_PATH")
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig, alias="TELEMETRY")

    @field_validator("styles")
    @classmethod
    def validate_styles(
        cls, v: dict[str, t.Union[str, StyleConfig]]
    ) -> dict[str, t.Union[str, StyleConfig]]:
        if not v:
            raise ValueError("At least one style must be configured")
        for name, definition in v.items():
            validate_style_name(name)
            if isinstance(definition, str):
                StyleSpec.parse(name, definition)
        return v

    @field_validator("storage", mode="before")
    @classmethod
    def validate_storage(cls, v: t.Any) -> StorageConfig:
        """Validate storage configuration with the config type of its backend."""
        if isinstance(v, dict) and "TYPE" not in v:
            raise ValueError("STORAGE must define TYPE")
        return parse_storage_config(v)

    @model_validator(mode="after")
    def validate_style_references(self) -> "Config":
        if self.default_style not in self.styles:
            raise ValueError(
                f"DEFAULT_STYLE '{self.default_style}' is not one of: {', '.join(self.styles)}"
            )
        unknown = [name for name in self.eager_styles if name not in self.styles]
        if unknown:
            raise ValueError(f"EAGER_STYLES reference unknown styles: {', '.join(unknown)}")
        return self

    def style_specs(self) -> dict[str, StyleSpec]:
        """Build the StyleSpec of every configured style."""
        specs: dict[str, StyleSpec] = {}
        for name, definition in self.styles.items():
            if isinstance(definition, StyleConfig):
                specs[name] = StyleSpec(
                    name=name,
                    target_width=definition.width,
                    target_height=definition.height,
                    mode=definition.mode,
                )
            else:
                specs[name] = StyleSpec.parse(name, definition)
        return specs

    def build_registry(self) -> StyleRegistry:
        """Build a style registry from this configuration."""
        return StyleRegistry(
            self.style_specs(), self.default_style, self.fallback_to_default_style
        )

    @classmethod
    def parse_yaml(cls, path: str) -> "Config":
        """Parse configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated Config instance

        Raises:
            SystemExit: If config file is not found
        """
        try:
            with open(path, "r") as f:
                return cls.model_validate(yaml.safe_load(f))
        except FileNotFoundError:
            print(f"Config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
