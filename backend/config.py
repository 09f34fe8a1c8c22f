# backend/config.py
from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_storefront.db"
    FRONTEND_URL: str = "http://localhost:3000"

    # Pricing rules (single store currency, INR)
    CURRENCY: str = "INR"
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("500")
    SHIPPING_FEE: Decimal = Decimal("50")
    TAX_RATE: Decimal = Decimal("18")  # percent (GST)

    ESTIMATED_DELIVERY_DAYS: int = 5

    # When False, order prices are taken from the catalog and the client price is ignored
    TRUST_CLIENT_PRICES: bool = True

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
