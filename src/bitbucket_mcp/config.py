"""Configuration management for the Bitbucket MCP server."""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .diff.matcher import ConfidenceWeights

CLOUD_API_URL = "https://api.bitbucket.org/2.0"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env" if os.getenv("ENVIRONMENT") != "test" else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "bitbucket-mcp-server"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Credentials: app password for Cloud, HTTP access token for Server
    bitbucket_username: Optional[str] = None
    bitbucket_app_password: Optional[str] = None
    bitbucket_token: Optional[str] = Field(
        default=None,
        description="Bitbucket Server/Data Center token. Its presence selects Server mode.",
    )
    bitbucket_base_url: str = CLOUD_API_URL

    # HTTP
    request_timeout: float = 30.0
    max_retries: int = 3

    # Diffs and snippet matching
    default_context_lines: int = 3
    match_base_confidence: float = 0.5
    match_before_weight: float = 0.3
    match_after_weight: float = 0.3
    match_added_line_bonus: float = 0.1

    @field_validator("bitbucket_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        if not v:
            return CLOUD_API_URL
        return str(v).rstrip("/")

    @property
    def is_server(self) -> bool:
        """Whether the configured instance is Bitbucket Server/Data Center."""
        return bool(self.bitbucket_token)

    def get_confidence_weights(self) -> ConfidenceWeights:
        return ConfidenceWeights(
            base=self.match_base_confidence,
            before_weight=self.match_before_weight,
            after_weight=self.match_after_weight,
            added_line_bonus=self.match_added_line_bonus,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
