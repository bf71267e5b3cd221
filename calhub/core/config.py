"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Calendar Hub"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./calhub.db"

    # Base64 of 32 random bytes, generate with scripts/generate_key.py
    encryption_key: str = ""

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8000/auth/google/callback"

    # Provider calls
    provider_timeout_seconds: float = 20.0
    token_expiry_skew_seconds: int = 300

    # Event sync window, relative to today
    sync_past_days: int = 30
    sync_future_days: int = 30


settings = Settings()
