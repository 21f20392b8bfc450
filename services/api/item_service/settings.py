"""Application settings via Pydantic Settings."""

from functools import lru_cache
import json

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from item_service.errors import ConfigurationMissing
from item_service.stores.connection import ConnectionTarget

# Development defaults for discrete database settings.
DEFAULT_DB_HOST = "localhost"
DEFAULT_DB_PORT = 5432
DEFAULT_DB_USER = "postgres"
DEFAULT_DB_NAME = "postgres"
DEFAULT_SSL_MODE = "disable"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    app_name: str = "Item Service"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    shutdown_grace_seconds: int = Field(default=5, ge=0)

    # Database (PostgreSQL). A full URL wins over the discrete fields.
    database_url: str | None = None
    db_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DB_HOST", "NEW_POSTGRES_DATABASE_HOST"),
    )
    db_port: int | None = Field(
        default=None,
        validation_alias=AliasChoices("DB_PORT", "NEW_POSTGRES_DATABASE_PORT"),
    )
    db_user: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DB_USER", "NEW_POSTGRES_DATABASE_USER"),
    )
    db_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DB_PASSWORD", "NEW_POSTGRES_DATABASE_PASSWORD"),
    )
    db_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DB_NAME", "NEW_POSTGRES_DATABASE_DATA"),
    )
    ssl_mode: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SSL_MODE", "DB_SSL_MODE"),
    )
    db_config_strict: bool = Field(
        default=False,
        description="Require discrete DB settings instead of falling back to dev defaults.",
    )

    # Redis. Empty string disables the cache.
    redis_url: str = "redis://localhost:6379/0"

    # Startup probes
    connect_max_attempts: int = Field(default=3, ge=1, le=20)
    connect_base_delay: float = Field(default=1.0, ge=0.0)
    cache_connect_max_attempts: int = Field(default=2, ge=1, le=20)
    probe_timeout: float = Field(default=3.0, gt=0.0, le=30.0)

    # Cache policy
    cache_op_timeout: float = Field(default=2.0, gt=0.0, le=30.0)
    item_cache_ttl: int = Field(default=600, ge=1)

    degradation_enabled: bool = Field(
        default=True,
        description="Fall back to an in-memory store when the database is unreachable.",
    )

    # CORS
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias=AliasChoices("CORS_ORIGINS", "ALLOWED_ORIGINS"),
    )

    @field_validator("database_url", "db_host", "db_port", "db_user", "db_name", "ssl_mode", mode="before")
    @classmethod
    def _blank_is_unset(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v: object) -> list[str]:
        """
        Accept either:
        - JSON array string: '["https://a.com","http://localhost:3000"]'
        - Comma-separated string: "https://a.com,http://localhost:3000"
        - Already-parsed list[str]
        """
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except json.JSONDecodeError:
                    parsed = s.split(",")
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
                return [str(parsed).strip()]
            return [part.strip() for part in s.split(",") if part.strip()]
        return [str(v).strip()] if str(v).strip() else []

    @property
    def cache_enabled(self) -> bool:
        return bool(self.redis_url.strip())

    def connection_target(self) -> ConnectionTarget:
        """Resolve the database connection target.

        Order: DATABASE_URL, then discrete DB_* fields, then development
        defaults. With `db_config_strict` the discrete fields must all be set
        when no DATABASE_URL is given.

        Raises:
            ConfigurationMissing: strict mode and discrete settings are absent.
        """
        if self.database_url:
            return ConnectionTarget.from_url(self.database_url)

        if self.db_config_strict:
            required = {
                "DB_HOST": self.db_host,
                "DB_PORT": self.db_port,
                "DB_USER": self.db_user,
                "DB_PASSWORD": self.db_password,
                "DB_NAME": self.db_name,
            }
            missing = [name for name, value in required.items() if value in (None, "")]
            if missing:
                raise ConfigurationMissing(missing)

        return ConnectionTarget(
            host=self.db_host or DEFAULT_DB_HOST,
            port=self.db_port or DEFAULT_DB_PORT,
            user=self.db_user or DEFAULT_DB_USER,
            password=self.db_password or "",
            database=self.db_name or DEFAULT_DB_NAME,
            ssl_mode=self.ssl_mode or DEFAULT_SSL_MODE,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
