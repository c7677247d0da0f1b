"""Unit tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.core.config import Settings, get_settings

REQUIRED_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SECRET_KEY": "test-secret",
    "SUPABASE_SIGNING_KEY_JWK": "{}",
}


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            **REQUIRED_ENV,
            "APP_NAME": "test-app",
            "APP_ENV": "testing",
            "DEBUG": "true",
            "HOST": "127.0.0.1",
            "PORT": "9000",
            "HANDLE_MAX_LENGTH": "24",
            "RATE_LIMIT_LEAD_REQUESTS": "3",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.app_name == "test-app"
            assert settings.app_env == "testing"
            assert settings.debug is True
            assert settings.host == "127.0.0.1"
            assert settings.port == 9000
            assert settings.handle_max_length == 24
            assert settings.rate_limit_lead_requests == 3

    def test_settings_cors_origins_list(self) -> None:
        """Test that CORS origins are correctly parsed into a list."""
        env_vars = {
            **REQUIRED_ENV,
            "CORS_ORIGINS": "http://localhost:3000, http://example.com , ,http://test.com",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.cors_origins_list == [
                "http://localhost:3000",
                "http://example.com",
                "http://test.com",
            ]

    def test_settings_requires_supabase(self) -> None:
        """Test that missing Supabase settings fail validation."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_defaults(self) -> None:
        """Test the defaults used by handles, lead keys and autosave."""
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = Settings(_env_file=None)

            assert settings.handle_max_length == 32
            assert settings.lead_key_max_length == 40
            assert settings.autosave_debounce_ms == 900
            assert settings.max_lead_body_size < settings.max_request_body_size
            assert settings.is_production is False
            assert settings.notifications_enabled is False


class TestPublicProfileUrl:
    """Tests for public page URLs."""

    def test_handle_at_site_root(self) -> None:
        with patch.dict(os.environ, {**REQUIRED_ENV, "FRONTEND_URL": "https://linket.app/"}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.public_profile_url("jess") == "https://linket.app/jess"

    def test_handle_under_prefix(self) -> None:
        env_vars = {
            **REQUIRED_ENV,
            "FRONTEND_URL": "https://linket.app",
            "PUBLIC_PROFILE_PATH_PREFIX": "/u/",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)
            assert settings.public_profile_url("jess") == "https://linket.app/u/jess"


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same cached instance."""
        get_settings.cache_clear()

        first = get_settings()
        second = get_settings()

        assert first is second
        get_settings.cache_clear()
