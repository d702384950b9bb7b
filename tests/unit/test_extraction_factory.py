"""Unit tests for extraction provider factory.

Tests cover:
- Provider registry lookups
- Factory function provider creation
- Configuration-based selection
- Error handling for unknown providers
"""

import logging

import pytest

from invoice_engine.extraction.base import ExtractionProvider, ExtractionResult
from invoice_engine.extraction.factory import ProviderRegistry, create_extraction_service
from invoice_engine.extraction.rules_provider import RuleBasedExtractionProvider
from invoice_engine.extraction.service import ExtractionService
from invoice_engine.extraction.structured_provider import StructuredGuessProvider
from invoice_engine.shared.config import Settings


def test_provider_registry_default_providers() -> None:
    """Test that registry contains default providers."""
    providers = ProviderRegistry.list_providers()

    assert "rules" in providers
    assert "structured" in providers


def test_provider_registry_get_rules() -> None:
    """Test getting the rule-based provider from registry."""
    assert ProviderRegistry.get_provider_class("rules") == RuleBasedExtractionProvider


def test_provider_registry_unknown_provider() -> None:
    """Test that unknown provider raises ValueError."""
    with pytest.raises(ValueError, match="Unknown extraction provider"):
        ProviderRegistry.get_provider_class("nonexistent")


def test_provider_registry_error_message_lists_available() -> None:
    """Test that error message lists available providers."""
    with pytest.raises(ValueError) as exc_info:
        ProviderRegistry.get_provider_class("invalid")

    assert "Available providers" in str(exc_info.value)
    assert "rules" in str(exc_info.value)


def test_provider_registry_register_new_provider() -> None:
    """Test registering a new provider."""

    class TestProvider(ExtractionProvider):
        def extract_invoice_fields(self, ocr_text: str) -> ExtractionResult:
            return self.failed_result("not implemented")

        def is_available(self) -> bool:
            return True

        @property
        def provider_name(self) -> str:
            return "test"

    ProviderRegistry.register("test", TestProvider)

    try:
        assert "test" in ProviderRegistry.list_providers()
        assert ProviderRegistry.get_provider_class("test") == TestProvider
    finally:
        del ProviderRegistry._providers["test"]


def test_create_extraction_service_default() -> None:
    """Test factory creates the rule-based provider by default."""
    provider = create_extraction_service(Settings(_env_file=None))

    assert isinstance(provider, RuleBasedExtractionProvider)
    assert provider.provider_name == "rules"


def test_create_extraction_service_structured() -> None:
    """Test configuration-based selection of the structured provider."""
    provider = create_extraction_service(Settings(_env_file=None, extraction_provider="structured"))

    assert isinstance(provider, StructuredGuessProvider)
    assert provider.provider_name == "structured"


def test_create_extraction_service_logs_creation(caplog: pytest.LogCaptureFixture) -> None:
    """Test that factory logs provider creation."""
    with caplog.at_level(logging.INFO):
        create_extraction_service(Settings(_env_file=None))

    assert "Created extraction provider: rules" in caplog.text


def test_extraction_service_alias() -> None:
    """Test that the service alias points to the default provider."""
    assert ExtractionService is RuleBasedExtractionProvider
