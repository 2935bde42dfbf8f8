from pydantic_settings import BaseSettings
from typing import List, Optional
from decimal import Decimal
from functools import lru_cache


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Vendor Sales & Commission API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Security (tokens are issued by the external identity provider)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Inventory lookup service
    INVENTORY_API_URL: Optional[str] = None
    INVENTORY_API_KEY: Optional[str] = None
    INVENTORY_TIMEOUT_SECONDS: float = 30.0
    INVENTORY_MAX_RETRIES: int = 3
    INVENTORY_BACKOFF_SECONDS: float = 1.0

    # Sale validation policy
    ENFORCE_IMEI_CHECKSUM: bool = True
    BLOCK_APPROVED_DUPLICATE_IMEI: bool = True

    # Risk scoring: when True a failing factor query contributes zero
    # penalty and the assessment is flagged as degraded
    RISK_FAIL_OPEN: bool = True

    # Commission recalculation
    COMMISSION_RECALC_TOLERANCE: Decimal = Decimal("0.01")

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
