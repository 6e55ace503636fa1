"""Configuration management for Marginalia."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment (MARGINALIA_ prefix) and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MARGINALIA_",
        extra="ignore",
    )

    # Storage
    db_path: Path = Path("data/marginalia.db")

    # Server
    host: str = "127.0.0.1"
    port: int = 8430

    # Fetching
    fetch_timeout: float = 15.0
    max_content_bytes: int = 10 * 1024 * 1024
    user_agent: str = "Mozilla/5.0 (compatible; Marginalia/0.1; read-it-later)"
    oembed_endpoint: str = "https://www.youtube.com/oembed"

    # Extraction
    min_content_chars: int = 1
    excerpt_length: int = 200


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
