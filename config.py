from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PATH = Path(__file__).resolve().parent / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_PATH, env_file_encoding="utf-8", extra="ignore")

    # App
    env: str = "dev"
    service_name: str = "nyumbasure-api"
    port: int = 8000
    cors_origins: List[str] = ["*"]

    # Database
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "nyumbasure"

    # Auth (service account JSON; falls back to application default credentials)
    firebase_service_account_json: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Marketplace rules
    default_page_size: int = 12
    max_page_size: int = 100
    escrow_ttl_hours: int = 24
    active_listing_window_days: int = 30


settings = Settings()
