import os
import tempfile
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8080
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    RESET_DB: bool = False

    JWT_SECRET: str = "default_secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_SECONDS: int = 3600

    CHECKOUT_TIMEOUT_SECONDS: float = 10.0
    RESERVATION_MAX_RETRIES: int = 2
    # false restores the per-line commit behaviour of the first release
    CHECKOUT_ATOMIC: bool = True
    DEFAULT_SHIPPING_ADDRESS: str = "Seattle, WA"
    LOCK_DIR: str = os.path.join(tempfile.gettempdir(), "ecom_locks")
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 30.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
