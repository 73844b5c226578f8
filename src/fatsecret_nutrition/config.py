"""Configuration management using pydantic-settings."""

import logging
import sys
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """FatSecret Nutrition MCP settings."""

    model_config = SettingsConfigDict(
        env_prefix="FATSECRET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OAuth1 consumer credentials, used as defaults when no credential file exists
    consumer_key: str = ""
    consumer_secret: str = ""

    # API endpoints
    api_base_url: str = "https://platform.fatsecret.com/rest/server.api"

    # OAuth 1.0a 3-legged authentication endpoints
    oauth_request_token_url: str = (
        "https://authentication.fatsecret.com/oauth/request_token"
    )
    oauth_authorize_url: str = "https://authentication.fatsecret.com/oauth/authorize"
    oauth_access_token_url: str = (
        "https://authentication.fatsecret.com/oauth/access_token"
    )

    # Persisted credential file
    credentials_path: str = "~/.config/fatsecret-nutrition/credentials.json"

    log_level: str = "WARNING"
    transport: Literal["stdio", "sse"] = "stdio"


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


def configure_logging(level: str = "WARNING") -> None:
    """Send log records to stderr; stdout carries the stdio transport."""
    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
