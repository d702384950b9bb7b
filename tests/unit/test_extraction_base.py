"""Unit tests for extraction base classes and interfaces.

Tests cover:
- Abstract base class enforcement
- ExtractionResult model validation
- The empty result for unusable input
"""

import pytest

from invoice_engine.extraction.base import ExtractionProvider, ExtractionResult
from invoice_engine.extraction.schema import NOT_FOUND, ConfidenceScoreSet, InvoiceRecord
from invoice_engine.shared.config import Settings


class EchoProvider(ExtractionProvider):
    """Minimal provider returning the input as invoice number."""

    def extract_invoice_fields(self, ocr_text: str) -> ExtractionResult:
        return ExtractionResult(
            invoice_data=InvoiceRecord(invoice_number=ocr_text),
            success=True,
            provider=self.provider_name,
        )

    def is_available(self) -> bool:
        return True

    @property
    def provider_name(self) -> str:
        return "echo"


def test_extraction_result_with_success() -> None:
    """Test ExtractionResult with successful extraction."""
    invoice_data = InvoiceRecord(invoice_number="RE-001")

    result = ExtractionResult(invoice_data=invoice_data, success=True, error=None, provider="test")

    assert result.success is True
    assert result.invoice_data.invoice_number == "RE-001"
    assert result.error is None
    assert result.provider == "test"
    assert result.confidence == ConfidenceScoreSet()


def test_extraction_result_requires_record() -> None:
    """Test that a result always carries a record, even on failure."""
    with pytest.raises(ValueError):
        ExtractionResult(invoice_data=None, success=False, error="x", provider="test")  # type: ignore[arg-type]


def test_extraction_provider_is_abstract() -> None:
    """Test that ExtractionProvider cannot be instantiated directly."""
    settings = Settings(_env_file=None)

    with pytest.raises(TypeError, match="Can't instantiate abstract class"):
        ExtractionProvider(settings)  # type: ignore[abstract]


def test_extraction_provider_requires_implementation() -> None:
    """Test that concrete providers must implement all abstract methods."""

    class IncompleteProvider(ExtractionProvider):
        def extract_invoice_fields(self, ocr_text: str) -> ExtractionResult:
            return self.failed_result("Not implemented")

        def is_available(self) -> bool:
            return True

        # Missing: provider_name property

    settings = Settings(_env_file=None)

    with pytest.raises(TypeError, match="Can't instantiate abstract class"):
        IncompleteProvider(settings)  # type: ignore[abstract]


def test_concrete_provider_implementation() -> None:
    """Test that properly implemented provider works correctly."""
    provider = EchoProvider(Settings(_env_file=None))

    result = provider.extract_invoice_fields("RE-42")

    assert provider.is_available() is True
    assert result.success is True
    assert result.invoice_data.invoice_number == "RE-42"
    assert result.provider == "echo"


def test_failed_result_is_empty_record_with_zero_confidence() -> None:
    """Test the result returned for unusable input."""
    provider = EchoProvider(Settings(_env_file=None, default_currency="CHF"))

    result = provider.failed_result("Empty OCR text provided")

    assert result.success is False
    assert result.error == "Empty OCR text provided"
    assert result.provider == "echo"
    assert result.invoice_data.invoice_number == NOT_FOUND
    assert result.invoice_data.currency == "CHF"
    assert result.invoice_data.is_empty is True
    assert result.confidence.overall == 0.0
