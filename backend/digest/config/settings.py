"""Configuration settings for the Box Digest worker."""

import tempfile
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DigestSettings(BaseSettings):
    """Worker-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="DIGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Render log lines as JSON instead of console output",
    )

    # Staging settings
    staging_dir: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory where files are staged during a pipeline run",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="Operations API host",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Operations API port",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level."""
        return str(v).upper()


class DocumentStoreSettings(BaseSettings):
    """Box document store settings."""

    model_config = SettingsConfigDict(
        env_prefix="BOX_",
        env_file=".env",
        extra="ignore",
    )

    client_id: str = Field(
        default="",
        description="Box OAuth client ID",
    )
    client_secret: str = Field(
        default="",
        description="Box OAuth client secret",
    )
    auth_url: str = Field(
        default="https://api.box.com/oauth2/token",
        description="Token endpoint used for refresh grants",
    )
    api_url: str = Field(
        default="https://api.box.com/2.0",
        description="Box content API base URL",
    )
    timeout_seconds: float = Field(
        default=120.0,
        ge=1.0,
        le=1800.0,
        description="Timeout for token refresh and content download",
    )

    @field_validator("auth_url", "api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Remove trailing slashes from URLs."""
        return v.rstrip("/")


class ExtractionSettings(BaseSettings):
    """Apache Tika extraction service settings."""

    model_config = SettingsConfigDict(
        env_prefix="TIKA_",
        env_file=".env",
        extra="ignore",
    )

    host: str = Field(
        default="http://localhost:9998",
        description="Tika server base URL",
    )
    timeout_seconds: float = Field(
        default=120.0,
        ge=1.0,
        le=1800.0,
        description="Timeout per extraction request",
    )

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate that the host is not empty."""
        if not v or not v.strip():
            raise ValueError("Tika host cannot be empty")
        return v.strip().rstrip("/")


class EntityTaggingSettings(BaseSettings):
    """Named-entity tagging server settings."""

    model_config = SettingsConfigDict(
        env_prefix="NER_",
        env_file=".env",
        extra="ignore",
    )

    host: str = Field(
        default="localhost",
        description="NER server host",
    )
    port: int = Field(
        default=9191,
        ge=1,
        le=65535,
        description="NER server port",
    )
    timeout_seconds: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        description="Timeout for one tagging round trip",
    )
    read_limit_bytes: int = Field(
        default=16 * 1024 * 1024,
        ge=64 * 1024,
        description="Maximum size of a single tagging response",
    )


class RenderSettings(BaseSettings):
    """Preview rendering toolchain settings."""

    model_config = SettingsConfigDict(
        env_prefix="RENDER_",
        env_file=".env",
        extra="ignore",
    )

    convert_binary: str = Field(
        default="convert",
        description="ImageMagick convert executable",
    )
    unoconv_binary: str = Field(
        default="unoconv",
        description="unoconv executable used for office to PDF conversion",
    )
    timeout_seconds: float = Field(
        default=120.0,
        ge=1.0,
        le=1800.0,
        description="Timeout per external process",
    )


class QueueSettings(BaseSettings):
    """Work queue consumer settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUE_",
        env_file=".env",
        extra="ignore",
    )

    enabled: bool = Field(
        default=True,
        description="Start the queue consumer with the application",
    )
    url: Optional[str] = Field(
        default=None,
        description="SQS queue URL",
    )
    region: Optional[str] = Field(
        default=None,
        description="AWS region of the queue",
    )
    concurrency: int = Field(
        default=4,
        ge=1,
        le=100,
        description="Maximum pipeline runs in flight",
    )
    wait_time_seconds: int = Field(
        default=20,
        ge=0,
        le=20,
        description="Long-poll wait time for receive calls",
    )
    idle_sleep_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Pause after an empty receive when long polling is disabled",
    )
    error_backoff_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=300.0,
        description="Pause after a failed receive call",
    )


class DatabaseSettings(BaseSettings):
    """File and Service record persistence settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        extra="ignore",
    )

    url: str = Field(
        default="sqlite+aiosqlite:///./data/digest.db",
        description="SQLAlchemy async database URL",
    )
    pool_size: int = Field(
        default=4,
        ge=1,
        le=100,
        description="Connection pool size (ignored for SQLite)",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements",
    )


@lru_cache()
def get_settings() -> DigestSettings:
    """Get cached settings instance.

    Returns:
        DigestSettings instance
    """
    return DigestSettings()


@lru_cache()
def get_document_store_settings() -> DocumentStoreSettings:
    """Get cached document store settings instance."""
    return DocumentStoreSettings()


@lru_cache()
def get_extraction_settings() -> ExtractionSettings:
    """Get cached extraction settings instance."""
    return ExtractionSettings()


@lru_cache()
def get_entity_tagging_settings() -> EntityTaggingSettings:
    """Get cached entity tagging settings instance."""
    return EntityTaggingSettings()


@lru_cache()
def get_render_settings() -> RenderSettings:
    """Get cached render settings instance."""
    return RenderSettings()


@lru_cache()
def get_queue_settings() -> QueueSettings:
    """Get cached queue settings instance."""
    return QueueSettings()


@lru_cache()
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings instance."""
    return DatabaseSettings()
