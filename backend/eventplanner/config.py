"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./eventplanner.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Sessions
    SESSION_SECRET: str = "change-me-in-production"
    SESSION_COOKIE_NAME: str = "session"
    SESSION_MAX_AGE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 10

    # Login throttling
    LOGIN_RATE_LIMIT_ATTEMPTS: int = 5
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Google Calendar import
    GOOGLE_CALENDAR_ID: str = ""
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REFRESH_TOKEN: str = ""
    CALENDAR_SYNC_TIMEOUT_SECONDS: float = 30.0
    CALENDAR_SYNC_WINDOW_MONTHS: int = 6
    CALENDAR_TIMEZONE: str = "UTC"

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def session_max_age_seconds(self) -> int:
        return self.SESSION_MAX_AGE_DAYS * 24 * 60 * 60


settings = Settings()
