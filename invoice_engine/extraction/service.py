"""Extraction service entry point.

For new code, prefer importing specific providers:
- RuleBasedExtractionProvider for the pattern pipeline over OCR text
- StructuredGuessProvider for validating a vision-AI JSON guess
- create_extraction_service() factory for configuration-based selection

Short import:
    from invoice_engine.extraction.service import ExtractionService
"""

from invoice_engine.extraction.base import ExtractionProvider, ExtractionResult
from invoice_engine.extraction.factory import create_extraction_service
from invoice_engine.extraction.rules_provider import RuleBasedExtractionProvider
from invoice_engine.extraction.schema import (
    NOT_FOUND,
    ConfidenceScoreSet,
    InvoiceRecord,
    PositionLineItem,
    TaxBucket,
)
from invoice_engine.extraction.structured_provider import StructuredGuessProvider

# ExtractionService is the default, text-in provider
ExtractionService = RuleBasedExtractionProvider


__all__ = [
    "ExtractionService",  # Default provider alias
    "ExtractionProvider",  # Base interface
    "ExtractionResult",  # Result model
    "InvoiceRecord",  # Schema
    "ConfidenceScoreSet",
    "PositionLineItem",
    "TaxBucket",
    "NOT_FOUND",
    "RuleBasedExtractionProvider",  # Concrete providers
    "StructuredGuessProvider",
    "create_extraction_service",
]
