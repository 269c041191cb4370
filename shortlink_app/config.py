from pydantic_settings import BaseSettings, SettingsConfigDict
import string


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
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "ShortLink"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    shutdown_grace_period: int = 10  # Seconds in-flight requests get to drain

    # Database
    database_url: str = "sqlite:///./shortlink.db"

    # Short link specific
    base_url: str = "http://127.0.0.1:8000"
    short_code_length: int = 6
    short_code_alphabet: str = string.ascii_letters + string.digits
    verification_code_length: int = 6
    max_retries: int = 5  # Hard ceiling on random code attempts
    default_duration_hours: int = 720  # 30 days

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory"
    redis_url: str = "redis://localhost:6379/0"
    url_cache_ttl: int = 3600  # Short code -> URL mapping TTL (seconds)
    verification_code_ttl: int = 300  # Verification code TTL (seconds)

    # View aggregation
    views_sync_interval: int = 60  # Seconds between sweeps
    views_sync_batch_size: int = 100  # Keys requested per SCAN call
    run_view_aggregator: bool = True  # Disable when a dedicated aggregator process runs

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
