from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    APP_NAME: str = "ShopOps Ledger"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    MONGODB_URL: str
    DATABASE_NAME: str
    DB_TIMEOUT_MS: int = 5000

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Stock ledger
    STOCK_UPDATE_MAX_RETRIES: int = 5
    STOCK_HISTORY_DEFAULT_LIMIT: int = 50
    STOCK_HISTORY_MAX_LIMIT: int = 500
    # A "syncing" claim older than this is treated as abandoned by reconcile
    INVENTORY_SYNC_CLAIM_TIMEOUT_SECONDS: int = 300

    # Email (low-stock alerts are skipped while MAIL_SERVER is unset)
    MAIL_USERNAME: str | None = None
    MAIL_PASSWORD: str | None = None
    MAIL_FROM: str | None = None
    MAIL_PORT: int = 587
    MAIL_SERVER: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
