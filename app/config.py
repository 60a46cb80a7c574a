from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Product Inventory Management API"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./inventory.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_SQL: bool = False

    # ==============================
    # HTTP
    # ==============================
    CORS_ALLOWED_ORIGINS: Optional[str] = None

    # ==============================
    # Inventory
    # ==============================
    HISTORY_ACTOR: str = "admin"
    IMPORT_MAX_UPLOAD_BYTES: int = 0

    # ==============================
    # Client
    # ==============================
    CLIENT_API_BASE_URL: str = "http://localhost:5000"
    CLIENT_UNDO_DELETE_SECONDS: float = 5.0
    CLIENT_REQUEST_TIMEOUT_SECONDS: int = 15


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
