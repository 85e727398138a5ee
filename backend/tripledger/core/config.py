"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from decimal import Decimal
from typing import List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Tripledger"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./tripledger.db"
    DB_ECHO: bool = False

    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Currency
    DEFAULT_CURRENCY: str = "USD"

    # Ledger tolerances (currency units)
    EXACT_SPLIT_TOLERANCE: Decimal = Decimal("0.05")  # Manual splits vs expense amount
    BALANCE_TOLERANCE: Decimal = Decimal("0.01")  # Balances this close to zero are settled
    STRICT_MATCH_TOLERANCE: Decimal = Decimal("0.1")  # Strict equal-split reconstruction
    UNIT_MATCH_TOLERANCE: Decimal = Decimal("0.05")  # Fraction of a unit, heuristic matching
    UNIT_SEARCH_MARGIN: int = 5  # Extra unit counts tried above the participant count

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
