from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "test", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Placeholder keeps local/test runs from failing; real deployments override via env.
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"

    # Background jobs
    REDIS_URL: str = "redis://localhost:6379/0"

    # Microservices URLs
    ORDERS_SERVICE_URL: str = "http://orders-service:8001"
    INTERNAL_HTTP_TIMEOUT: float = 10.0

    # Platform commission (percent)
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("10.00")
    COMMISSION_RATE_OVERRIDES: dict[str, Decimal] = {}
    COMMISSION_RECONCILE_BATCH: int = 200

    # Referral program (percent / days)
    SELLER_REFERRAL_RATE: Decimal = Decimal("10.00")
    PRODUCT_REFERRAL_RATE: Decimal = Decimal("5.00")
    REFERRAL_EXPIRY_DAYS: int = 30

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
            if v.startswith("postgres://"):
                return v.replace("postgres://", "postgresql+psycopg://", 1)
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
