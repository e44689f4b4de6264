"""
Configuration management using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import Field, ValidationError, field_validator

from divisas_exporter.common.exceptions import ConfigurationError

# Load .env file into os.environ so all nested BaseSettings pick up values
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)

DEFAULT_PORT = 6869
DEFAULT_UPSTREAM_URL = "https://exchange-rate-api.pages.dev/api/v2/informal/target/cup.json"
DEFAULT_USER_AGENT = "Divisas Exporter"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ServerSettings(BaseSettings):
    """Metrics/health HTTP listener configuration"""
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)

    @field_validator("port", mode="before")
    @classmethod
    def _empty_port_means_default(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_PORT
        return value

    class Config:
        env_prefix = ""


class UpstreamSettings(BaseSettings):
    """Remote exchange-rate API configuration"""
    url: str = Field(default=DEFAULT_UPSTREAM_URL)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    timeout_seconds: float = Field(default=30.0)

    class Config:
        env_prefix = "UPSTREAM_"


class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return level

    class Config:
        env_prefix = "LOG_"


class Settings(BaseSettings):
    """Main settings aggregating all configuration sections"""
    server: ServerSettings = Field(default_factory=ServerSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        extra = "ignore"


def load_settings() -> Settings:
    """
    Build Settings from the current environment.

    Raises:
        ConfigurationError: if any variable fails validation (e.g. PORT=abc)
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

