"""Application configuration from environment variables."""

from typing import Literal

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./realty_contracts.db",
        description="SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file")

    # API
    api_title: str = Field(default="Realty Contracts API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    # Paging
    default_page_size: int = Field(default=20, gt=0, description="Page size when none is given")
    max_page_size: int = Field(default=100, gt=0, description="Upper bound for requested page size")

    # Contract lifecycle
    purchase_approval_status: Literal["WAITING_OFFICIAL", "ACTIVE"] = Field(
        default="WAITING_OFFICIAL",
        description="Status an approved purchase contract moves to",
    )
    contract_number_prefix_deposit: str = Field(default="DC", min_length=1)
    contract_number_prefix_purchase: str = Field(default="PC", min_length=1)

    # Payment schedule
    deposit_due_days: int = Field(
        default=3, ge=0, description="Days after the payment request the deposit is due"
    )
    advance_due_days: int = Field(
        default=0, ge=0, description="Days after approval the advance payment is due"
    )
    full_pay_due_days: int = Field(
        default=30, ge=0, description="Days after the contract start date the balance is due"
    )


# Global settings instance
settings = Settings()
