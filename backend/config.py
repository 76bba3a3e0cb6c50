# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_stockapp.db"

    FRONTEND_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Auto-generated codes for items created without sku/barcode
    SKU_PREFIX: str = "SKU"
    BARCODE_LENGTH: int = 13

    # Optimistic concurrency: how many times a movement is replayed after losing a race
    MOVEMENT_RETRY_LIMIT: int = 5
    MOVEMENT_HISTORY_LIMIT: int = 100

    # Deepest category chain the nested dashboard tree is served for
    CATEGORY_MAX_DEPTH: int = 100

    # Scan OUT without an explicit selling price records the item's current one
    SCAN_SELLING_PRICE_FALLBACK: bool = True

    class Config:
        env_file: ClassVar[str] = str(env_path)

settings = Settings()
