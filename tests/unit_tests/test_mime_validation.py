"""Tests for MIME type validation."""

from unittest.mock import patch

import puremagic
import pytest

from imagestyles.errors import ContentMismatchError, UnsupportedMediaType
from imagestyles.mime_validation import (
    DEFAULT_ALLOWED_MIME_TYPES,
    validate_content_mime_type,
    validate_mime_type,
)
from tests.unit_tests.fake_images import make_image_bytes

ALLOWED = frozenset({"image/jpeg", "image/png"})


class TestValidateMimeType:
    @pytest.mark.parametrize("mime_type", sorted(ALLOWED))
    def test_allowed_types_pass(self, mime_type: str):
        validate_mime_type(mime_type, ALLOWED)

    def test_pdf_rejected(self):
        with pytest.raises(UnsupportedMediaType, match="application/pdf") as exc_info:
            validate_mime_type("application/pdf", ALLOWED)
        assert exc_info.value.mime_type == "application/pdf"
        assert exc_info.value.allowed == ALLOWED
        assert isinstance(exc_info.value, ValueError)

    def test_match_is_case_sensitive(self):
        with pytest.raises(UnsupportedMediaType):
            validate_mime_type("IMAGE/JPEG", ALLOWED)

    @pytest.mark.parametrize("mime_type", ["", "jpeg", "image"])
    def test_malformed_type_rejected(self, mime_type: str):
        with pytest.raises(UnsupportedMediaType, match="Invalid MIME type format"):
            validate_mime_type(mime_type, ALLOWED)

    def test_defaults_cover_common_web_images(self):
        assert DEFAULT_ALLOWED_MIME_TYPES == {"image/jpeg", "image/png", "image/gif"}


class TestValidateContentMimeType:
    @pytest.mark.parametrize(
        ("format", "mime_type"),
        [("JPEG", "image/jpeg"), ("PNG", "image/png"), ("GIF", "image/gif")],
    )
    def test_matching_content_passes(self, format: str, mime_type: str):
        validate_content_mime_type(make_image_bytes(8, 8, format=format, mode="RGB"), mime_type)

    def test_png_declared_as_jpeg_rejected(self):
        with pytest.raises(ContentMismatchError, match="Detected types"):
            validate_content_mime_type(make_image_bytes(8, 8, format="PNG"), "image/jpeg")

    def test_pdf_disguised_as_png_rejected(self):
        with pytest.raises(ContentMismatchError) as exc_info:
            validate_content_mime_type(b"%PDF-1.7 not an image", "image/png")
        assert isinstance(exc_info.value, UnsupportedMediaType)

    def test_unidentifiable_content_rejected(self):
        with patch.object(puremagic, "magic_string", side_effect=puremagic.PureError("no match")):
            with pytest.raises(ContentMismatchError, match="Could not identify"):
                validate_content_mime_type(b"\x00\x01\x02", "image/png")

    def test_empty_content_rejected(self):
        with pytest.raises(ContentMismatchError, match="empty"):
            validate_content_mime_type(b"", "image/png")
