from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production", "test"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "UTC"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 5  # Max seconds to wait for a pooled connection
    DB_POOL_RECYCLE: int = 1800

    # Auth (token issuance lives elsewhere; we only verify)
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"

    # Payment gateway
    PAYMENT_GATEWAY_URL: str = "https://api.razorpay.com/v1"
    PAYMENT_GATEWAY_KEY_ID: str = "test-key-id"
    PAYMENT_GATEWAY_KEY_SECRET: str = ""
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 30.0
    PAYMENT_CURRENCY: str = "INR"

    # Marketplace policy
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("0.10")
    SETTLEMENT_TIMEOUT_SECONDS: float = 10.0

    # Rate limiting (slowapi)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    DEFAULT_RATE_LIMIT: str = "100/minute"
    PAYMENT_RATE_LIMIT: str = "10/minute"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @field_validator("DEFAULT_COMMISSION_RATE")
    @classmethod
    def check_default_rate(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError("DEFAULT_COMMISSION_RATE must be between 0 and 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
