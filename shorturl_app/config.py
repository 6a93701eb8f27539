from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = False

    # Application
    app_name: str = "Short URL Microservice"
    app_version: str = "1.0.0"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["*"]

    # Durable store (empty = run on the in-memory fallback only)
    database_url: str = ""
    db_connect_timeout: int = 5

    # URL validation
    dns_check_enabled: bool = True
    dns_timeout: float = 3.0

    # Identifier allocation
    max_retries: int = 5  # Insert attempts when a fresh identifier collides

    # Seconds between durable store checks while on the fallback (0 = never)
    reconnect_interval: int = 30

    # Logging
    log_level: str = "INFO"

    # Landing page and static assets
    views_dir: str = "views"
    public_dir: str = "public"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
