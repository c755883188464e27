"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # TELEGRAM
    # ===================
    telegram_bot_token: Optional[str] = Field(
        None,
        description="Telegram bot token from @BotFather"
    )
    telegram_chat_id: Optional[str] = Field(
        None,
        description="Telegram chat ID for stock-out alerts"
    )

    # ===================
    # REORDER SETTINGS
    # ===================
    lead_time_days: int = Field(
        default=14,
        ge=1,
        le=120,
        description="Days from purchase order to stock arriving at the warehouse"
    )
    safety_buffer_days: int = Field(
        default=2,
        ge=0,
        le=60,
        description="Extra days of demand to cover on top of the lead time"
    )

    # ===================
    # SCREENER THRESHOLDS
    # ===================
    stockout_risk_days: int = Field(
        default=3,
        ge=1,
        le=30,
        description="Days of stock left at or below which a product is at stock-out risk"
    )
    dead_stock_max_sales_30d: int = Field(
        default=3,
        ge=0,
        le=100,
        description="30-day unit sales at or below which stocked SKUs count as dead stock"
    )

    # ===================
    # ANALYTICS CACHE
    # ===================
    analytics_cache_ttl_minutes: Optional[int] = Field(
        None,
        ge=1,
        description="Optional expiry for cached analytics (None = until invalidated)"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def telegram_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
