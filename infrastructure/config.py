"""Application configuration via pydantic settings."""
from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.value_objects import RefundPolicy


class Settings(BaseSettings):
    """Typed application configuration, read from the environment or .env"""

    app_name: str = "Rental Reservation API"
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Security
    secret_key: str = Field("change-me-in-production", alias="SECRET_KEY")
    algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    admin_username: str = Field("admin", alias="ADMIN_USERNAME")
    admin_password: str = Field("admin123", alias="ADMIN_PASSWORD")

    # Money
    currency_symbol: str = Field("₱", alias="CURRENCY_SYMBOL")
    default_deposit_multiplier: Decimal = Field(Decimal("1"), gt=0, alias="DEFAULT_DEPOSIT_MULTIPLIER")

    # Refund schedule
    full_refund_days: int = Field(7, ge=0, alias="FULL_REFUND_DAYS")
    partial_refund_days: int = Field(3, ge=0, alias="PARTIAL_REFUND_DAYS")
    partial_refund_percentage: Decimal = Field(Decimal("50"), ge=0, le=100, alias="PARTIAL_REFUND_PERCENTAGE")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    def refund_policy(self) -> RefundPolicy:
        return RefundPolicy(
            full_refund_days=self.full_refund_days,
            partial_refund_days=self.partial_refund_days,
            partial_refund_percentage=self.partial_refund_percentage
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
