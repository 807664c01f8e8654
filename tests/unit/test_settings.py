"""
Unit tests for application settings.

Settings are built with _env_file=None and explicit values so the
developer's .env never leaks into the assertions.
"""

import pytest
from pydantic import ValidationError

from src.config.settings import Settings


def make_settings(**overrides) -> Settings:
    values = dict(
        r2_account_id="",
        r2_access_key_id="",
        r2_secret_access_key="",
        r2_bucket_name="",
        r2_endpoint_url=None,
        r2_mock_mode=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestEndpoint:
    """Tests for endpoint resolution."""

    def test_endpoint_built_from_account_id(self):
        settings = make_settings(r2_account_id="abc123")
        assert settings.r2_endpoint == "https://abc123.r2.cloudflarestorage.com"

    def test_explicit_endpoint_wins(self):
        settings = make_settings(r2_account_id="abc123", r2_endpoint_url="http://localhost:9000")
        assert settings.r2_endpoint == "http://localhost:9000"

    def test_no_endpoint_when_nothing_set(self):
        assert make_settings().r2_endpoint is None


class TestRequiredFields:
    """Tests for missing-configuration reporting."""

    def test_everything_missing(self):
        assert make_settings().validate_required_fields() == [
            "R2_ENDPOINT_URL or R2_ACCOUNT_ID",
            "R2_ACCESS_KEY_ID",
            "R2_SECRET_ACCESS_KEY",
            "R2_BUCKET_NAME",
        ]

    def test_nothing_required_in_mock_mode(self):
        assert make_settings(r2_mock_mode=True).validate_required_fields() == []

    def test_complete_configuration(self):
        settings = make_settings(
            r2_account_id="abc123",
            r2_access_key_id="key",
            r2_secret_access_key="secret",
            r2_bucket_name="images",
        )
        assert settings.validate_required_fields() == []


class TestStorageConfig:
    """Tests for the StorageConfig built from settings."""

    def test_storage_config_carries_values(self):
        settings = make_settings(
            r2_account_id="abc123",
            r2_access_key_id="key",
            r2_secret_access_key="secret",
            r2_bucket_name="images",
            r2_max_attempts=3,
            image_key_prefix="aimock/projects",
            signed_url_expiry_seconds=900,
        )

        config = settings.storage_config()

        assert config.endpoint_url == "https://abc123.r2.cloudflarestorage.com"
        assert config.bucket_name == "images"
        assert config.region == "auto"
        assert config.max_attempts == 3
        assert config.key_prefix == "aimock/projects"
        assert config.signed_url_expiry == 900
        assert config.has_credentials and config.has_location

    def test_defaults_match_single_attempt_and_one_hour(self):
        config = make_settings().storage_config()
        assert config.max_attempts == 1
        assert config.signed_url_expiry == 3600
        assert config.key_prefix == "projects"

    def test_signed_url_expiry_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_settings(signed_url_expiry_seconds=0)


class TestListParsing:
    """Tests for comma-separated settings."""

    def test_api_keys_split_and_trimmed(self):
        settings = make_settings(api_keys=" a , b,,c ")
        assert settings.api_keys_list == ["a", "b", "c"]

    def test_cors_wildcard(self):
        assert make_settings(cors_origins="*").cors_origins_list == ["*"]
