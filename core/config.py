"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Batching
    DEFAULT_BATCH_SIZE: int = 10000

    # Sinks
    DATABASE_URL: Optional[str] = None
    HTTP_TIMEOUT: float = 30.0
    CONSOLE_PREVIEW_ROWS: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
