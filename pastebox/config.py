"""
Configuration module for Pastebox.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "pastebox:")
        # One of "auto", "redis" or "memory"
        self.STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "auto").strip().lower()
        self.DEBUG: bool = _as_bool(os.getenv("DEBUG", "False"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.APP_DOMAIN: str = os.getenv("APP_DOMAIN", "http://localhost:8000")
        # Enables the x-test-now-ms header; never set this in production
        self.TEST_MODE: bool = _as_bool(os.getenv("TEST_MODE", "0"))
        self.PASTE_ID_LENGTH: int = int(os.getenv("PASTE_ID_LENGTH", "10"))


settings = Settings()
