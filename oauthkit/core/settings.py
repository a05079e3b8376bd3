"""
Engine settings.
"""
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """OAuth2 engine settings (environment / .env)."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP
    oauth_http_timeout: float = Field(
        default=10.0,
        validation_alias=AliasChoices("OAUTH_HTTP_TIMEOUT", "HTTP_TIMEOUT"),
        description="Timeout (seconds) of the default HTTP client used for provider calls",
    )

    # Providers
    oauth_config_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OAUTH_CONFIG_PATH", "OAUTH_PROVIDERS_FILE"),
        description="YAML file with provider definitions",
    )
    oauth_code_expired_error_code: int = Field(
        default=5003002,
        validation_alias=AliasChoices("OAUTH_CODE_EXPIRED_ERROR_CODE"),
        description="Provider error code meaning 'authorization code expired'",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "OAUTH_LOG_LEVEL"),
        description="Minimum log level",
    )
    log_file: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LOG_FILE", "OAUTH_LOG_FILE"),
        description="Optional log file path",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()


settings = Settings()
