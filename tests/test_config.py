"""
Settings loading and validation.
"""
import logging

import pytest

from conftest import make_settings
from kubekorea.common.exceptions import ConfigurationError
from kubekorea.core.config import (
    DEVELOPMENT_SECRET,
    is_feature_enabled,
    load_settings,
    parse_bool,
    parse_float,
    parse_int,
    parse_list,
    validate_settings,
)

ENV_KEYS = (
    "APP_ENV", "API_BASE_URL", "API_TIMEOUT", "API_RETRIES", "ENABLE_API", "USE_LOCAL_STORAGE",
    "AUTH_SECRET", "ADMIN_EMAILS", "GITHUB_ID", "GITHUB_SECRET", "CACHE_TTL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestLoadSettings:

    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings.environment == "development"
        assert settings.api_base_url == "http://localhost:3001"
        assert settings.enable_api is False
        assert settings.use_local_storage is True
        assert settings.auth_secret == DEVELOPMENT_SECRET
        assert settings.admin_emails == ["admin@example.com"]

    def test_reads_environment(self, clean_env):
        clean_env.setenv("APP_ENV", "production")
        clean_env.setenv("ENABLE_API", "TRUE")
        clean_env.setenv("API_RETRIES", "5")
        clean_env.setenv("API_TIMEOUT", "2.5")
        clean_env.setenv("ADMIN_EMAILS", "a@example.com, b@example.com")
        clean_env.setenv("GITHUB_ID", "client-id")

        settings = load_settings()

        assert settings.is_production()
        assert settings.api_base_url == "https://api.kubernetes-community.com"
        assert settings.enable_api is True
        assert settings.api_retries == 5
        assert settings.api_timeout == 2.5
        assert settings.admin_emails == ["a@example.com", "b@example.com"]
        assert settings.github_client_id == "client-id"

    def test_invalid_values_fall_back(self, clean_env):
        clean_env.setenv("APP_ENV", "staging")
        clean_env.setenv("API_RETRIES", "many")
        clean_env.setenv("CACHE_TTL", "soon")

        settings = load_settings()

        assert settings.environment == "development"
        assert settings.api_retries == 3
        assert settings.cache_ttl == 300


class TestValidateSettings:

    def test_production_requires_secret(self):
        with pytest.raises(ConfigurationError):
            validate_settings(make_settings(environment="production", auth_secret=DEVELOPMENT_SECRET))

        settings = make_settings(environment="production", auth_secret="real-secret")
        assert validate_settings(settings) is settings

    def test_development_allows_default_secret(self):
        validate_settings(make_settings(environment="development", auth_secret=DEVELOPMENT_SECRET))

    def test_api_requires_base_url(self):
        with pytest.raises(ConfigurationError):
            validate_settings(make_settings(enable_api=True, api_base_url=""))

        validate_settings(make_settings(enable_api=False, api_base_url=""))


class TestParseHelpers:

    def test_parse_bool(self):
        assert parse_bool("true") is True
        assert parse_bool(" True ") is True
        assert parse_bool("yes") is False
        assert parse_bool(None, default=True) is True

    def test_parse_numbers(self):
        assert parse_int("7", 1) == 7
        assert parse_int("x", 1) == 1
        assert parse_float("0.5", 1.0) == 0.5
        assert parse_float("", 1.0) == 1.0

    def test_parse_list(self):
        assert parse_list("a, b,,c", []) == ["a", "b", "c"]
        assert parse_list(None, ["x"]) == ["x"]

    def test_feature_flags(self, monkeypatch):
        monkeypatch.setenv("FEATURE_DARK_MODE", "true")
        monkeypatch.delenv("FEATURE_BETA", raising=False)

        assert is_feature_enabled("dark_mode") is True
        assert is_feature_enabled("beta") is False


class TestLogLevel:

    def test_levels_by_environment(self):
        assert make_settings(environment="production").get_log_level() == logging.ERROR
        assert make_settings(environment="development").get_log_level() == logging.DEBUG
        assert make_settings(environment="test").get_log_level() > logging.CRITICAL
