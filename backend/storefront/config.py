import os
import tempfile
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    SQL_ECHO: bool = False
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"
    LOCK_DIR: str = os.path.join(tempfile.gettempdir(), "storefront_locks")
    LOCK_TIMEOUT_SECONDS: float = 10.0
    LOCK_BUCKETS: int = 256
    DEFAULT_SHIPPING_METHOD: str = "standard"
    DEFAULT_PAYMENT_METHOD: str = "card"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
