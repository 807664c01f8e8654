"""
Unit tests for the image domain rules.

These tests cover content-type validation, key derivation and
key-or-URL resolution. Everything here is pure, no storage involved.
"""

import re
from uuid import UUID

import pytest

from src.core.images.models import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    build_object_key,
    extract_extension,
    is_valid_content_type,
    resolve_object_key,
)


KEY_PATTERN = re.compile(r"^projects/([0-9a-f-]{36})\.(.+)$")


# ---------------------------------------------------------------------------
# Content Type Tests
# ---------------------------------------------------------------------------

class TestContentType:
    """Tests for the image content-type allow-list."""

    @pytest.mark.parametrize("content_type", sorted(ALLOWED_IMAGE_CONTENT_TYPES))
    def test_allowed_types_accepted_in_any_case(self, content_type):
        assert is_valid_content_type(content_type)
        assert is_valid_content_type(content_type.upper())
        assert is_valid_content_type(content_type.title())

    @pytest.mark.parametrize("content_type", [
        "image/svg+xml",
        "image/heic",
        "application/pdf",
        "text/plain",
        "image/png; charset=binary",
        " image/png",
        "",
    ])
    def test_other_types_rejected(self, content_type):
        assert not is_valid_content_type(content_type)

    def test_none_rejected(self):
        """A missing content type is never valid."""
        assert not is_valid_content_type(None)


# ---------------------------------------------------------------------------
# Key Derivation Tests
# ---------------------------------------------------------------------------

class TestExtractExtension:
    """Tests for filename extension extraction."""

    def test_extension_casing_preserved(self):
        assert extract_extension("photo.PNG") == "PNG"

    def test_uses_last_dot(self):
        assert extract_extension("archive.tar.gz") == "gz"

    def test_no_dot_yields_whole_filename(self):
        """Upstream behavior: no dot means the filename is the extension."""
        assert extract_extension("photo") == "photo"

    def test_trailing_dot_yields_empty_extension(self):
        assert extract_extension("photo.") == ""


class TestBuildObjectKey:
    """Tests for new object key generation."""

    def test_key_has_prefix_uuid_and_extension(self):
        key = build_object_key("photo.png")

        match = KEY_PATTERN.match(key)
        assert match is not None
        UUID(match.group(1))
        assert match.group(2) == "png"

    def test_extension_casing_carried_into_key(self):
        assert build_object_key("photo.PNG").endswith(".PNG")

    def test_custom_prefix(self):
        assert build_object_key("a.gif", prefix="aimock/projects").startswith("aimock/projects/")

    def test_keys_are_unique(self):
        keys = {build_object_key("photo.png") for _ in range(50)}
        assert len(keys) == 50


# ---------------------------------------------------------------------------
# Key Resolution Tests
# ---------------------------------------------------------------------------

class TestResolveObjectKey:
    """Tests for turning a key or URL back into an object key."""

    def test_path_style_url_strips_bucket(self):
        url = "https://host/images/projects/abc.png"
        assert resolve_object_key(url, "images") == "projects/abc.png"

    def test_bare_key_unchanged(self):
        assert resolve_object_key("projects/abc.png", "images") == "projects/abc.png"

    def test_malformed_url_falls_back_to_raw_string(self):
        raw = "http://[::1/projects/abc.png"
        assert resolve_object_key(raw, "images") == raw

    def test_http_prefix_without_host_falls_back(self):
        assert resolve_object_key("http:/projects/abc.png", "images") == "http:/projects/abc.png"

    def test_signed_url_query_ignored(self):
        url = (
            "https://acc.r2.cloudflarestorage.com/images/projects/abc.png"
            "?X-Amz-Algorithm=AWS4-HMAC-SHA256&X-Amz-Expires=3600"
        )
        assert resolve_object_key(url, "images") == "projects/abc.png"

    def test_virtual_host_url_keeps_path(self):
        url = "https://images.host.example/projects/abc.png"
        assert resolve_object_key(url, "images") == "projects/abc.png"

    def test_only_leading_bucket_segment_stripped(self):
        url = "https://host/projects/images/abc.png"
        assert resolve_object_key(url, "images") == "projects/images/abc.png"

    def test_repeated_leading_slashes_removed(self):
        assert resolve_object_key("https://host//images/a.png", "images") == "a.png"

    def test_percent_encoded_path_decoded(self):
        url = "https://host/images/projects/my%20photo.png"
        assert resolve_object_key(url, "images") == "projects/my photo.png"

    def test_bucket_name_prefix_of_other_segment_kept(self):
        """'images-old/' is not the bucket 'images'."""
        url = "https://host/images-old/a.png"
        assert resolve_object_key(url, "images") == "images-old/a.png"
