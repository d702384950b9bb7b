"""Abstract base class for extraction providers.

Enables switching between the rule-based text pipeline and the validation of
a structured vision-AI guess while keeping one result type.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from invoice_engine.extraction.schema import ConfidenceScoreSet, InvoiceRecord
from invoice_engine.shared.config import Settings


class ExtractionResult(BaseModel):
    """Result of extraction operation.

    Attributes:
        invoice_data: Extracted record; all-sentinel when nothing was extracted
        confidence: Per-field confidence scores; all zero on failure
        success: Whether operation succeeded
        error: Error message if operation failed
        provider: Name of provider that performed extraction (e.g., 'rules', 'structured')
    """

    invoice_data: InvoiceRecord
    confidence: ConfidenceScoreSet = Field(default_factory=ConfidenceScoreSet)
    success: bool
    error: str | None = None
    provider: str


class ExtractionProvider(ABC):
    """Abstract base class for invoice extraction providers.

    Providers never raise for missing or malformed data. Invalid input yields
    a failed result with an empty record and zero confidence, so callers tell
    "nothing extracted" apart from "not run" by the result, not by exceptions.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize provider with settings.

        Args:
            settings: Engine settings
        """
        self.settings = settings

    @abstractmethod
    def extract_invoice_fields(self, ocr_text: str) -> ExtractionResult:
        """Extract structured invoice data.

        Args:
            ocr_text: Raw text from the OCR or vision-AI collaborator

        Returns:
            ExtractionResult with structured invoice data or error
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is available/configured.

        Returns:
            True if provider can be used, False otherwise
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier (e.g., 'rules', 'structured')
        """
        pass

    def failed_result(self, error: str) -> ExtractionResult:
        """Build the empty, zero-confidence result for unusable input."""
        return ExtractionResult(
            invoice_data=InvoiceRecord.empty(currency=self.settings.default_currency),
            confidence=ConfidenceScoreSet(),
            success=False,
            error=error,
            provider=self.provider_name,
        )
