"""Unit tests for configuration management."""

import os
from collections.abc import Generator
from decimal import Decimal

import pytest
from pydantic import ValidationError

from invoice_engine.shared.config import Settings, get_settings


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables before and after test."""
    original_env = dict(os.environ)
    env_vars = [k for k in os.environ if k.upper().startswith("EXTRACTION_")]
    for var in env_vars:
        del os.environ[var]
    yield
    os.environ.clear()
    os.environ.update(original_env)


def test_settings_defaults(clean_env: None) -> None:
    """Test that settings have correct default values."""
    settings = Settings(_env_file=None)

    assert settings.environment == "development"
    assert settings.log_level == "INFO"
    assert settings.service_name == "invoice-extraction-engine"
    assert settings.service_version == "0.1.0"
    assert settings.extraction_provider == "rules"
    assert settings.standard_vat_rate == Decimal("19")
    assert settings.reconciliation_tolerance == Decimal("0.02")
    assert settings.two_digit_year_pivot == 50
    assert settings.default_currency == "EUR"
    assert settings.supplier_name_scan_lines == 10
    assert settings.supplier_address_scan_lines == 15
    assert settings.batch_max_workers == 4


def test_settings_from_env_vars(clean_env: None) -> None:
    """Test that settings can be overridden via environment variables."""
    os.environ["EXTRACTION_ENVIRONMENT"] = "production"
    os.environ["EXTRACTION_LOG_LEVEL"] = "ERROR"
    os.environ["EXTRACTION_STANDARD_VAT_RATE"] = "7"

    settings = Settings(_env_file=None)

    assert settings.environment == "production"
    assert settings.log_level == "ERROR"
    assert settings.standard_vat_rate == Decimal("7")


def test_settings_case_insensitive(clean_env: None) -> None:
    """Test that environment variables are case insensitive."""
    os.environ["extraction_log_level"] = "DEBUG"

    settings = Settings(_env_file=None)

    assert settings.log_level == "DEBUG"


def test_settings_rejects_invalid_vat_rate(clean_env: None) -> None:
    """Test that the standard rate is bounded to a percentage."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, standard_vat_rate=Decimal("120"))


def test_settings_rejects_unknown_provider(clean_env: None) -> None:
    """Test that only registered provider names are accepted."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, extraction_provider="openai")  # type: ignore[arg-type]


def test_get_settings_factory(clean_env: None) -> None:
    """Test that factory function returns Settings instance."""
    settings = get_settings()

    assert isinstance(settings, Settings)
    assert settings.service_name == "invoice-extraction-engine"
