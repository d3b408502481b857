"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # ======================
    # Market simulation
    # ======================
    MARKET_ENABLED: bool = True
    MARKET_COMPANY_COUNT: int = 8
    MARKET_TICK_SECONDS: float = 4.0
    NEWS_REFRESH_SECONDS: float = 30.0
    NEWS_MIN_EVENTS: int = 1
    NEWS_MAX_EVENTS: int = 3
    NEWS_FALLBACK_ENABLED: bool = True
    STARTING_CASH: float = 100000.0
    MARKET_SEED: Optional[int] = None

    # ======================
    # Text generation (news + roster)
    # ======================
    LLM_PROVIDER: str = "none"  # none | anthropic | local
    LLM_BASE_URL: str = "https://api.anthropic.com"
    LLM_MODEL: str = "claude-3-5-haiku-latest"
    ANTHROPIC_API_KEY: Optional[str] = None
    LLM_TIMEOUT_SECONDS: float = 20.0
    LLM_MAX_TOKENS: int = 1024

    # ======================
    # Redis snapshot cache
    # ======================
    REDIS_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PREFIX: str = "tradestreet:"
    SNAPSHOT_TTL_SECONDS: int = 3600
    SNAPSHOT_EVERY_TICKS: int = 5

    # ======================
    # Timezone
    # ======================
    TIMEZONE: str = "UTC"

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )


settings = Settings()
