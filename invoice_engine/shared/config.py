"""Shared configuration management for the extraction engine.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'EXTRACTION_'.
    Example: EXTRACTION_STANDARD_VAT_RATE=7
    """

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-extraction-engine",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Extraction provider configuration
    extraction_provider: Literal["rules", "structured"] = Field(
        default="rules",
        description=(
            "Extraction provider: rules (pattern pipeline over OCR text), "
            "structured (validate a vision-AI JSON guess)"
        ),
    )

    # Reconciliation policy
    standard_vat_rate: Decimal = Field(
        default=Decimal("19"),
        ge=0,
        le=100,
        description=(
            "Rate assumed when no tax breakdown is found. German standard rate; "
            "reduced-rate (7%) invoices are misclassified under this fallback"
        ),
    )
    reconciliation_tolerance: Decimal = Field(
        default=Decimal("0.02"),
        ge=0,
        description="Maximum accepted |net + tax - gross| difference per tax bucket",
    )

    # Parsing
    two_digit_year_pivot: int = Field(
        default=50,
        ge=0,
        le=99,
        description="Two-digit years above the pivot map to 19xx, others to 20xx",
    )
    default_currency: str = Field(
        default="EUR",
        description="Currency code used when the document names none (ISO 4217)",
    )

    # Document-structure heuristics
    supplier_name_scan_lines: int = Field(
        default=10,
        ge=1,
        description="Header lines scanned for the supplier name",
    )
    supplier_address_scan_lines: int = Field(
        default=15,
        ge=1,
        description="Header lines scanned for the supplier address",
    )

    # Batch processing
    batch_max_workers: int = Field(
        default=4,
        ge=1,
        description="Thread pool size for batch extraction",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
