"""Tests for style specs and the style registry."""

import logging

import pytest
from pydantic import ValidationError

from imagestyles.errors import ConfigError, UnknownStyle
from imagestyles.styles import StyleMode, StyleRegistry, StyleSpec


class TestStyleSpec:
    @pytest.mark.parametrize(
        ("geometry", "expected"),
        [
            ("48x48>", (48, 48, StyleMode.BOUNDING_BOX)),
            ("680x680", (680, 680, StyleMode.BOUNDING_BOX)),
            ("32X16!", (32, 16, StyleMode.EXACT)),
            (" 1200 x 300 # ", (1200, 300, StyleMode.CROP)),
        ],
    )
    def test_parse_geometry(self, geometry: str, expected: tuple):
        spec = StyleSpec.parse("style", geometry)
        assert (spec.target_width, spec.target_height, spec.mode) == expected

    @pytest.mark.parametrize("geometry", ["", "48", "48x", "x48", "48x48<", "-1x5", "axb"])
    def test_malformed_geometry_raises(self, geometry: str):
        with pytest.raises(ConfigError, match="Invalid geometry"):
            StyleSpec.parse("style", geometry)

    def test_zero_dimension_raises(self):
        with pytest.raises(ConfigError, match="positive dimensions"):
            StyleSpec.parse("style", "0x48>")

    def test_non_positive_dimensions_rejected_by_model(self):
        with pytest.raises(ValidationError):
            StyleSpec(name="style", target_width=0, target_height=10)

    def test_geometry_round_trip(self):
        assert StyleSpec.parse("mini", "48x48").geometry == "48x48>"

    def test_spec_is_immutable(self):
        spec = StyleSpec.parse("mini", "48x48>")
        with pytest.raises(ValidationError):
            spec.target_width = 10  # type: ignore[misc]


class TestStyleRegistryResolve:
    def test_resolves_named_style(self, registry: StyleRegistry):
        spec = registry.resolve("mini")
        assert spec.name == "mini"
        assert (spec.target_width, spec.target_height) == (48, 48)

    @pytest.mark.parametrize("style_name", [None, ""])
    def test_missing_name_resolves_default(self, registry: StyleRegistry, style_name):
        assert registry.resolve(style_name).name == "product"

    def test_unknown_style_raises(self, registry: StyleRegistry):
        with pytest.raises(UnknownStyle) as exc_info:
            registry.resolve("nonexistent")
        assert exc_info.value.style_name == "nonexistent"
        assert exc_info.value.available == ("mini", "product")
        assert isinstance(exc_info.value, KeyError)

    def test_fallback_to_default_is_opt_in(self, caplog: pytest.LogCaptureFixture):
        registry = StyleRegistry.from_geometries(
            {"mini": "48x48>", "product": "680x680>"}, "product", fallback_to_default=True
        )
        with caplog.at_level(logging.WARNING):
            spec = registry.resolve("nonexistent")
        assert spec.name == "product"
        assert "falling back to default style" in caplog.text


class TestStyleRegistryConstruction:
    def test_empty_registry_rejected(self):
        with pytest.raises(ConfigError, match="cannot be empty"):
            StyleRegistry({}, "product")

    def test_default_must_exist(self):
        with pytest.raises(ConfigError, match="Default style 'missing'"):
            StyleRegistry.from_geometries({"mini": "48x48>"}, "missing")

    @pytest.mark.parametrize("name", ["original", "has space", "a/b", ""])
    def test_invalid_style_names_rejected(self, name: str):
        with pytest.raises(ConfigError):
            StyleRegistry.from_geometries({name: "48x48>"}, name)

    def test_spec_name_must_match_key(self):
        with pytest.raises(ConfigError, match="is named"):
            StyleRegistry({"mini": StyleSpec.parse("other", "48x48>")}, "mini")


class TestStyleRegistryPublishing:
    def test_staged_changes_invisible_until_publish(self, registry: StyleRegistry):
        registry.register("large", StyleSpec.parse("large", "1600x1600>"))
        registry.set_default("large")

        assert registry.default_style == "product"
        with pytest.raises(UnknownStyle):
            registry.resolve("large")

        registry.publish()

        assert registry.default_style == "large"
        assert registry.resolve("large").target_width == 1600

    def test_snapshot_taken_before_publish_is_unchanged(self, registry: StyleRegistry):
        before = registry.snapshot()
        registry.register("mini", StyleSpec.parse("mini", "64x64>"))
        registry.publish()

        assert before.resolve("mini").target_width == 48
        assert registry.resolve("mini").target_width == 64

    def test_snapshot_mapping_is_read_only(self, registry: StyleRegistry):
        with pytest.raises(TypeError):
            registry.snapshot().styles["x"] = StyleSpec.parse("x", "1x1")  # type: ignore[index]

    def test_invalid_publish_keeps_live_snapshot(self, registry: StyleRegistry):
        registry.set_default("missing")
        with pytest.raises(ConfigError):
            registry.publish()
        assert registry.default_style == "product"
        assert registry.resolve().name == "product"

    def test_unregister_then_publish(self, registry: StyleRegistry):
        registry.unregister("mini")
        registry.publish()
        assert registry.names == ("product",)

    def test_unregister_unknown_raises(self, registry: StyleRegistry):
        with pytest.raises(UnknownStyle):
            registry.unregister("nonexistent")

    def test_replace_swaps_whole_registry(self, registry: StyleRegistry):
        other = StyleRegistry.from_geometries({"thumb": "100x100#"}, "thumb")
        registry.replace(other)
        assert registry.names == ("thumb",)
        assert registry.resolve().mode is StyleMode.CROP
