from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "Stock Ledger API"
    DEBUG: bool = False
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite+pysqlite:///./stockledger.db"

    # Tokens are issued by the auth service; this app only decodes them.
    JWT_SECRET: str = "stockledger-dev-secret"
    JWT_ALGORITHM: str = "HS256"

    LOW_STOCK_THRESHOLD: int = 10
    EXPIRY_WINDOW_DAYS: int = 30
    PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    model_config = SettingsConfigDict(env_file=".env", env_prefix="STOCKLEDGER_", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
