"""Application configuration via environment variables."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./driptech.db"

    # Redis (for rate limiting)
    redis_url: str = "redis://localhost:6379"
    rate_limit_enabled: bool = True

    # Email (SendGrid). Empty key means dry-run delivery.
    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"
    mail_from: str = "quotes@driptech.co.ke"
    mail_timeout_seconds: float = 10.0

    # Default admin account created at startup
    admin_email: str = "admin@driptech.co.ke"
    admin_password: str = ""
    admin_name: str = "System Administrator"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
