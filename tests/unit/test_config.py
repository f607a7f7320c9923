"""Test configuration module."""

import os
from unittest.mock import patch

from bitbucket_mcp.config import CLOUD_API_URL, Settings, get_settings
from bitbucket_mcp.diff.matcher import DEFAULT_WEIGHTS


# Clear settings cache before each test in this module
def setup_module():
    """Clear settings cache before tests."""
    get_settings.cache_clear()


def teardown_module():
    """Clear settings cache after tests."""
    get_settings.cache_clear()


class TestSettings:
    """Test Settings class."""

    def setup_method(self):
        """Clear settings cache before each test."""
        get_settings.cache_clear()

    def teardown_method(self):
        """Clear settings cache after each test."""
        get_settings.cache_clear()

    def test_default_settings(self):
        """Test default settings values."""
        with patch.dict(os.environ, {"ENVIRONMENT": "test"}, clear=True):
            from pydantic_settings import SettingsConfigDict

            # Temporarily override env_file to prevent loading .env
            original_config = Settings.model_config
            Settings.model_config = SettingsConfigDict(
                env_file=None,
                case_sensitive=False,
                extra="ignore"
            )

            try:
                settings = Settings()
            finally:
                Settings.model_config = original_config

            assert settings.app_name == "bitbucket-mcp-server"
            assert settings.debug is False
            assert settings.log_level == "INFO"
            assert settings.bitbucket_base_url == CLOUD_API_URL
            assert settings.bitbucket_token is None
            assert settings.is_server is False
            assert settings.request_timeout == 30.0
            assert settings.max_retries == 3
            assert settings.default_context_lines == 3

    def test_settings_from_env(self):
        """Test settings from environment variables."""
        env_vars = {
            "BITBUCKET_USERNAME": "jdoe",
            "BITBUCKET_TOKEN": "server-token",
            "BITBUCKET_BASE_URL": "https://bitbucket.example.com/",
            "MAX_RETRIES": "5",
            "LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars):
            settings = Settings()

            assert settings.bitbucket_username == "jdoe"
            assert settings.bitbucket_token == "server-token"
            assert settings.bitbucket_base_url == "https://bitbucket.example.com"
            assert settings.max_retries == 5
            assert settings.log_level == "DEBUG"

    def test_token_selects_server_mode(self):
        """A token means Bitbucket Server; an app password alone means Cloud."""
        assert Settings(bitbucket_token="t").is_server is True
        assert Settings(
            bitbucket_token=None,
            bitbucket_username="u",
            bitbucket_app_password="p",
        ).is_server is False

    def test_empty_base_url_falls_back_to_cloud(self):
        settings = Settings(bitbucket_base_url="")
        assert settings.bitbucket_base_url == CLOUD_API_URL

    def test_confidence_weights(self):
        """Default weights match the matcher defaults; overrides flow through."""
        assert Settings().get_confidence_weights() == DEFAULT_WEIGHTS

        weights = Settings(match_before_weight=0.2, match_added_line_bonus=0.0).get_confidence_weights()
        assert weights.before_weight == 0.2
        assert weights.added_line_bonus == 0.0
        assert weights.base == 0.5


class TestGetSettings:
    """Test get_settings function."""

    def setup_method(self):
        get_settings.cache_clear()

    def teardown_method(self):
        get_settings.cache_clear()

    def test_get_settings_cached(self):
        """Test that get_settings returns cached instance."""
        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2
