from pathlib import Path

import pytest
from pydantic import ValidationError

from imagestyles.config import DEFAULT_MAX_UPLOAD_SIZE, Config, StyleConfig
from imagestyles.errors import UnknownStyle
from imagestyles.storage.local_storage import LocalStorageConfig
from imagestyles.storage.memory_storage import MemoryStorageConfig
from imagestyles.styles import StyleMode

YAML_CONFIG = """
APP_NAME: shop-images
STYLES:
  mini: "48x48>"
  product: "680x680>"
  banner:
    WIDTH: 1200
    HEIGHT: 300
    MODE: crop
DEFAULT_STYLE: product
ALLOWED_MIME_TYPES:
  - image/jpeg
  - image/png
EAGER_STYLES:
  - mini
STORAGE:
  TYPE: local_storage
  ROOT: /var/lib/images
  BASE_URL: https://cdn.example.com/images
TELEMETRY:
  ENABLED: false
"""


class TestConfigDefaults:
    def test_minimal_config(self, raw_config: dict):
        config = Config.model_validate(
            {"STYLES": raw_config["STYLES"], "DEFAULT_STYLE": "product"}
        )
        assert config.allowed_mime_types == {"image/jpeg", "image/png", "image/gif"}
        assert config.fallback_to_default_style is False
        assert config.eager_styles == ()
        assert config.validate_content is True
        assert config.max_upload_size == DEFAULT_MAX_UPLOAD_SIZE
        assert config.max_workers == 4
        assert config.generation_timeout is None
        assert isinstance(config.storage, MemoryStorageConfig)
        assert config.repository_path is None
        assert config.telemetry.enabled is False

    def test_config_is_frozen(self, config: Config):
        with pytest.raises(ValidationError):
            config.default_style = "mini"  # type: ignore[misc]


class TestConfigValidation:
    def test_default_style_must_exist(self, raw_config: dict):
        with pytest.raises(ValidationError, match="DEFAULT_STYLE 'missing'"):
            Config.model_validate({**raw_config, "DEFAULT_STYLE": "missing"})

    def test_styles_required(self, raw_config: dict):
        with pytest.raises(ValidationError, match="At least one style"):
            Config.model_validate({**raw_config, "STYLES": {}})

    def test_invalid_geometry(self, raw_config: dict):
        with pytest.raises(ValidationError, match="Invalid geometry"):
            Config.model_validate({**raw_config, "STYLES": {"product": "big"}})

    def test_reserved_style_name(self, raw_config: dict):
        with pytest.raises(ValidationError, match="reserved"):
            Config.model_validate(
                {**raw_config, "STYLES": {"original": "10x10", "product": "680x680>"}}
            )

    def test_eager_styles_must_exist(self, raw_config: dict):
        with pytest.raises(ValidationError, match="EAGER_STYLES"):
            Config.model_validate({**raw_config, "EAGER_STYLES": ["huge"]})

    def test_storage_type_required(self, raw_config: dict):
        with pytest.raises(ValidationError, match="TYPE"):
            Config.model_validate({**raw_config, "STORAGE": {"ROOT": "/tmp"}})

    def test_unknown_storage_type(self, raw_config: dict):
        with pytest.raises(ValidationError, match="Unknown storage type"):
            Config.model_validate({**raw_config, "STORAGE": {"TYPE": "ftp_storage"}})

    @pytest.mark.parametrize(
        ("key", "value"),
        [("MAX_WORKERS", 0), ("MAX_UPLOAD_SIZE", 0), ("JPEG_QUALITY", 100), ("GENERATION_TIMEOUT", 0)],
    )
    def test_numeric_limits(self, raw_config: dict, key: str, value):
        with pytest.raises(ValidationError):
            Config.model_validate({**raw_config, key: value})

    def test_invalid_telemetry_endpoint(self, raw_config: dict):
        with pytest.raises(ValidationError, match="Invalid endpoint"):
            Config.model_validate({**raw_config, "TELEMETRY": {"ENDPOINT": "localhost:4317"}})


class TestRegistryFromConfig:
    def test_build_registry(self, config: Config):
        registry = config.build_registry()
        assert registry.names == ("mini", "product")
        assert registry.resolve().name == "product"
        with pytest.raises(UnknownStyle):
            registry.resolve("nonexistent")

    def test_fallback_flag(self, raw_config: dict):
        config = Config.model_validate({**raw_config, "FALLBACK_TO_DEFAULT_STYLE": True})
        assert config.build_registry().resolve("nonexistent").name == "product"

    @pytest.mark.parametrize("mode", ["#", "crop", "CROP"])
    def test_mapping_style(self, mode: str):
        style = StyleConfig.model_validate({"WIDTH": 100, "HEIGHT": 50, "MODE": mode})
        assert style.mode is StyleMode.CROP


class TestParseYaml:
    def test_parse_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yml"
        path.write_text(YAML_CONFIG)

        config = Config.parse_yaml(str(path))

        assert config.app_name == "shop-images"
        assert config.allowed_mime_types == {"image/jpeg", "image/png"}
        assert config.eager_styles == ("mini",)
        assert isinstance(config.storage, LocalStorageConfig)
        assert config.storage.root == "/var/lib/images"
        specs = config.style_specs()
        assert specs["banner"].geometry == "1200x300#"
        assert specs["mini"].geometry == "48x48>"

    def test_missing_file_exits(self, tmp_path: Path, capsys: pytest.CaptureFixture):
        with pytest.raises(SystemExit) as exc_info:
            Config.parse_yaml(str(tmp_path / "missing.yml"))
        assert exc_info.value.code == 1
        assert "Config file not found" in capsys.readouterr().err
