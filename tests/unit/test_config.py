"""Unit tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sacmtb.core.config import DEFAULT_CARRIERS, CarrierTemplate, Settings, get_settings

BASE_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SECRET_KEY": "test-secret",
    "JWT_SECRET": "test-jwt",
}


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            **BASE_ENV,
            "APP_NAME": "test-app",
            "PORT": "9000",
            "PAYMENT_CURRENCY": "usd",
            "OTP_EXPIRE_MINUTES": "10",
            "ADMIN_EMAIL": "boss@example.com",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.app_name == "test-app"
            assert settings.port == 9000
            assert settings.payment_currency == "usd"
            assert settings.otp_expire_minutes == 10
            assert settings.admin_email == "boss@example.com"

    def test_defaults(self) -> None:
        """Test the documented defaults."""
        with patch.dict(os.environ, BASE_ENV, clear=True):
            settings = Settings(_env_file=None)

            assert settings.jwt_expire_days == 7
            assert settings.otp_length == 6
            assert settings.otp_max_attempts == 3
            assert settings.payment_currency == "inr"
            assert [c.name for c in settings.carrier_tracking_table] == [c.name for c in DEFAULT_CARRIERS]

    def test_settings_cors_origins_list(self) -> None:
        """Test that CORS origins are correctly parsed into a list."""
        env_vars = {**BASE_ENV, "CORS_ORIGINS": "http://localhost:3000, http://example.com , "}

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.cors_origins_list == ["http://localhost:3000", "http://example.com"]

    def test_carrier_table_from_json(self) -> None:
        """Test overriding the carrier table through the environment."""
        env_vars = {
            **BASE_ENV,
            "CARRIER_TRACKING_TABLE": '[{"name": "Local", "pattern": "local", "url_template": "https://l.example/{tracking_id}"}]',
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert len(settings.carrier_tracking_table) == 1
            assert settings.carrier_tracking_table[0].pattern == "local"

    @pytest.mark.parametrize("pattern", ["", "   ", "--!!"])
    def test_carrier_pattern_must_normalise_to_something(self, pattern: str) -> None:
        """Test that a pattern matching every partner name is rejected."""
        env_vars = {
            **BASE_ENV,
            "CARRIER_TRACKING_TABLE": (
                f'[{{"name": "Any", "pattern": "{pattern}", "url_template": "https://a.example/{{tracking_id}}"}}]'
            ),
        }

        with patch.dict(os.environ, env_vars, clear=False):
            with pytest.raises(ValidationError, match="pattern"):
                Settings()

    @pytest.mark.parametrize(
        "url_template",
        ["https://a.example/track", "https://a.example/{awb}", "https://a.example/{}", "https://a.example/{tracking_id"],
    )
    def test_carrier_template_needs_tracking_id_placeholder(self, url_template: str) -> None:
        """Test that a URL template without exactly the tracking_id placeholder is rejected."""
        with pytest.raises(ValidationError, match="url_template"):
            CarrierTemplate(name="Any", pattern="any", url_template=url_template)

    def test_missing_required_settings(self) -> None:
        """Test that required settings must be provided."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_is_cached(self) -> None:
        """Test that get_settings returns the same instance."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()
