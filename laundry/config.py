"""Application configuration."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.
    
    Environment variables take precedence over .env file.
    This makes it compatible with Docker (uses env vars) and 
    local development (uses .env file).
    """
    
    APP_NAME: str = "Laundry Marketplace"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Database
    DATABASE_URL: str = "sqlite:///./laundry.db"
    
    # Checkout pricing
    CURRENCY_SYMBOL: str = "₨"
    FREE_DELIVERY_THRESHOLD: float = 1000
    DELIVERY_FEE: float = 100
    EXPRESS_FEE_RATE: float = 0.5
    DEFAULT_EXPRESS_MULTIPLIER: float = 1.5
    STANDARD_ESTIMATED_HOURS: int = 24
    EXPRESS_ESTIMATED_HOURS: int = 12
    
    # Order numbers are derived then inserted, so concurrent checkouts can collide
    ORDER_NUMBER_MAX_RETRIES: int = 3
    
    # Push relay (FCM-compatible HTTP bridge); push is skipped when unset
    PUSH_WEBHOOK_URL: Optional[str] = None
    PUSH_TIMEOUT_SECONDS: float = 10.0
    
    model_config = SettingsConfigDict(
        # Only load .env file if it exists (for local dev)
        # Docker will use environment variables directly
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
