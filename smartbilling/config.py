from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Smart Billing API"
    ENVIRONMENT: str = "local"
    CORS_ORIGINS: str = "*"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./billing.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Owner Resolution
    # ==============================
    DEFAULT_OWNER_ID: int = 1
    OWNER_HEADER: str = "X-User-Id"

    # ==============================
    # Token Auth
    # ==============================
    AUTH_TOKEN_MODE: str = "disabled"
    AUTH_REQUIRED: bool = False
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None

    # ==============================
    # Passwords
    # ==============================
    PASSWORD_PBKDF2_ROUNDS: int = 200_000

    # ==============================
    # Demo Account
    # ==============================
    SEED_DEMO_USER: bool = True
    DEMO_EMAIL: str = "demo@shop.com"
    DEMO_PASSWORD: str = "demo123"
    DEMO_SHOP_NAME: str = "Demo Medical Shop"
    DEMO_TRIAL_DAYS: int = 30

    # ==============================
    # Item Import
    # ==============================
    IMPORT_MAX_REPORTED_ERRORS: int = 10


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


def split_csv_setting(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [entry.strip() for entry in value.split(",") if entry.strip()]


__all__ = ["Settings", "get_settings", "split_csv_setting"]
