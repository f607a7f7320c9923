"""Test configuration and fixtures."""

import os

import pytest

# Set test environment variables BEFORE importing the package
os.environ["ENVIRONMENT"] = "test"
for _var in ("BITBUCKET_USERNAME", "BITBUCKET_APP_PASSWORD", "BITBUCKET_TOKEN", "BITBUCKET_BASE_URL"):
    os.environ.pop(_var, None)

from bitbucket_mcp.config import Settings, get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Keep get_settings() from leaking state between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def cloud_settings() -> Settings:
    """Settings for a Bitbucket Cloud workspace."""
    return Settings(
        bitbucket_username="jdoe",
        bitbucket_app_password="app-password",
        max_retries=0,
    )


@pytest.fixture
def server_settings() -> Settings:
    """Settings for a Bitbucket Server instance."""
    return Settings(
        bitbucket_username="jdoe",
        bitbucket_token="server-token",
        bitbucket_base_url="https://bitbucket.example.com",
        max_retries=0,
    )
