"""API configuration from environment variables."""

from functools import lru_cache

from fastapi import Request
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://hungrygo:hungrygo@db:5432/hungrygo"
    AUTO_CREATE_TABLES: bool = False

    JWT_SECRET: str = "changeme"
    JWT_EXPIRES_DAYS: int = 30

    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""

    PORT: int = 3000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]

    # Rate limiting (fixed window, per client IP)
    REDIS_URL: str = "redis://redis:6379/0"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 900

    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings from the environment; used when the app is built."""
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """FastAPI dependency: the Settings the running app was built with."""
    return request.app.state.settings
