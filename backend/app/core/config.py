"""
Application configuration using Pydantic Settings.

Environment-based infrastructure switching is controlled by the ENVIRONMENT variable.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./livedesk.db"
    DATABASE_ECHO: bool = False

    # ===========================================
    # Auth (bearer tokens)
    # ===========================================
    # - mock: token is treated as a principal id (development only)
    # - local: HS256 JWT signed with LOCAL_JWT_SECRET
    AUTH_PROVIDER: Literal["mock", "local"] = "mock"
    LOCAL_JWT_SECRET: str = ""
    LOCAL_JWT_ISSUER: str = "livedesk-local"
    LOCAL_JWT_EXPIRE_MINUTES: int = 60 * 24

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # ===========================================
    # Routing
    # ===========================================
    DEFAULT_DEPARTMENT_SLUG: str = "general"
    AUTO_ROUTE_ON_OPEN: bool = True
    AGENT_MAX_CONCURRENT_CHATS: int = 5

    # ===========================================
    # Session locking
    # ===========================================
    SESSION_LOCK_TIMEOUT_SECONDS: float = 5.0
    SESSION_LOCK_RETRY_BACKOFF_SECONDS: float = 0.2

    # ===========================================
    # Analytics
    # ===========================================
    ANALYTICS_DEFAULT_DAYS: int = 7
    ANALYTICS_TOP_RATED_LIMIT: int = 10

    # ===========================================
    # Abandoned session sweeper
    # ===========================================
    ABANDON_SWEEPER_ENABLED: bool = True
    ABANDON_AFTER_MINUTES: int = 30
    ABANDON_SWEEP_INTERVAL_MINUTES: int = 5

    # ===========================================
    # Staff notifications
    # ===========================================
    # - log: write notices to the application log
    # - smtp: send email through SMTP_HOST
    NOTIFIER: Literal["log", "smtp"] = "log"
    CHAT_NOTIFY_EMAILS: List[str] = Field(default_factory=list)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "livedesk@localhost"
    SMTP_USE_TLS: bool = True

    # ===========================================
    # Knowledge base
    # ===========================================
    KNOWLEDGE_SEARCH_LIMIT: int = 5

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
