"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the users service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = Field(
        default="sqlite:///./fasttech_users.db",
        description="SQLAlchemy database URL. Defaults to local SQLite for development.",
    )
    run_db_migrations: bool = Field(
        default=False,
        description="Whether the service should create the users table on startup.",
    )
    jwt_secret_key: str = Field(
        default="",
        description="JWT signing secret. The service refuses to start without it.",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    identity_issuer: str = Field(default="FastTech.Usuarios", description="Issuer claim of minted tokens")
    identity_audience: str = Field(default="FastTech", description="Audience claim of minted tokens")
    access_token_expire_minutes: int = Field(default=60, description="Token lifetime in minutes")
    clock_skew_minutes: int = Field(default=5, description="Tolerance applied to expiry checks")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="30/minute", description="Global rate limiting rule")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")
    log_dir: str = Field(default="logs", description="Directory receiving the HTTP audit log")
    log_level: str = Field(default="INFO", description="Level of the application loggers")

    seed_admin_user: bool = Field(default=False, description="Create the default admin user on startup")
    admin_name: str = "Administrador"
    admin_email: str = "admin@admin.com"
    admin_national_id: str = "829.091.170-06"
    admin_password: str = "admin123"

    users_service_port: int = 8001


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
