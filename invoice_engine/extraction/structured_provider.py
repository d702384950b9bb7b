"""Validation of structured guesses from a vision-AI service.

A vision model can read the invoice image directly and answer with a JSON
object instead of raw text. This provider does not call the model; it takes
the model's answer and maps it onto the same InvoiceRecord as the rule-based
pipeline, with the same parsers, tax reconciliation and confidence scoring.

Handles common LLM quirks:
- JSON wrapped in markdown code blocks or surrounded by prose
- camelCase or snake_case keys
- German amount strings instead of numbers ("1.190,00")
- "null" strings for missing values
"""

import json
import logging
import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from invoice_engine.extraction.base import ExtractionProvider, ExtractionResult
from invoice_engine.extraction.metrics import extraction_confidence, extractions_total
from invoice_engine.extraction.schema import NOT_FOUND, InvoiceRecord, PositionLineItem
from invoice_engine.parsing.amounts import AmountParser
from invoice_engine.parsing.confidence import ConfidenceScorer, ExtractionEvidence
from invoice_engine.parsing.dates import DateParser
from invoice_engine.parsing.patterns import iban_is_valid
from invoice_engine.parsing.tax import TaxReconciliation
from invoice_engine.shared.config import Settings

logger = logging.getLogger(__name__)

# Keys used by vision-AI prompts that differ from the record field names
KEY_ALIASES: dict[str, str] = {
    "date": "invoice_date",
    "delivery_date": "service_date",
    "vat_amount": "tax_amount",
    "vat_rate": "tax_rate",
    "iban": "supplier_iban",
    "bic": "supplier_bic",
    "vat_id": "supplier_vat_id",
    "tax_number": "supplier_tax_number",
    "project_number": "project_reference",
    "description": "service_description",
    "reverse_charge": "has_reverse_charge",
    "intra_community_supply": "is_intra_community_supply",
}

STRING_FIELDS: tuple[str, ...] = (
    "supplier_vat_id",
    "supplier_tax_number",
    "supplier_bic",
    "supplier_email",
    "supplier_phone",
    "contact_person",
    "payment_reference",
    "order_number",
    "delivery_note_number",
    "project_reference",
    "customer_number",
    "payment_terms",
    "discount_terms",
)
DATE_FIELDS: tuple[str, ...] = ("service_date", "service_period_start", "service_period_end", "due_date")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_EMPTY_MARKERS = {"", "null", "none", "n/a", "unbekannt", "nicht_gefunden", NOT_FOUND.lower()}


def snake_case(key: str) -> str:
    """Convert ``supplierVatId`` or ``supplier-vat-id`` to ``supplier_vat_id``."""
    return _CAMEL_BOUNDARY.sub("_", key).replace("-", "_").lower()


def parse_json_response(response_text: str) -> dict[str, Any]:
    """Extract and parse the JSON object from an LLM response.

    Args:
        response_text: Raw LLM response

    Returns:
        Parsed JSON dict

    Raises:
        json.JSONDecodeError: If no valid JSON found
        ValueError: If the JSON is not an object
    """
    # Try to extract JSON from markdown code block
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", response_text)
    if json_match:
        result: Any = json.loads(json_match.group(1).strip())
    else:
        # Try to find JSON object directly
        json_match = re.search(r"\{[\s\S]*\}", response_text)
        result = json.loads(json_match.group(0) if json_match else response_text.strip())

    if not isinstance(result, dict):
        raise ValueError(f"Expected a JSON object, got {type(result).__name__}")
    return result


class StructuredGuessProvider(ExtractionProvider):
    """Maps a vision-AI JSON guess onto a validated InvoiceRecord."""

    def __init__(self, settings: Settings) -> None:
        """Initialize structured guess provider.

        Args:
            settings: Engine settings
        """
        super().__init__(settings)
        self._amounts = AmountParser()
        self._dates = DateParser(settings.two_digit_year_pivot)
        self._reconciliation = TaxReconciliation(
            settings.standard_vat_rate, settings.reconciliation_tolerance
        )
        self._scorer = ConfidenceScorer()

    @property
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier 'structured'
        """
        return "structured"

    def is_available(self) -> bool:
        """Validation runs locally; the vision-AI call happens upstream."""
        return True

    def extract_invoice_fields(self, ocr_text: str) -> ExtractionResult:
        """Validate a vision-AI answer.

        Args:
            ocr_text: Raw response text of the vision-AI service

        Returns:
            ExtractionResult with the normalized record or error
        """
        return self.extract_from_guess(ocr_text)

    def extract_from_guess(
        self, guess: str | Mapping[str, Any], ocr_text: str | None = None
    ) -> ExtractionResult:
        """Normalize a structured guess and score it.

        Args:
            guess: JSON response text or already parsed dict
            ocr_text: OCR text of the same document, used to corroborate values

        Returns:
            ExtractionResult; failed with an empty record for unusable guesses
        """
        if isinstance(guess, str):
            if not guess.strip():
                extractions_total.labels(provider=self.provider_name, status="failed").inc()
                return self.failed_result("Empty response provided")
            try:
                guess = parse_json_response(guess)
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Failed to parse JSON from vision-AI response: {e}")
                extractions_total.labels(provider=self.provider_name, status="failed").inc()
                return self.failed_result(f"JSON parsing failed: {str(e)}")

        if not isinstance(guess, Mapping):
            extractions_total.labels(provider=self.provider_name, status="failed").inc()
            return self.failed_result("Structured guess must be a JSON object")

        try:
            record, evidence = self.build_record(guess)
            confidence = self._scorer.score(ocr_text or "", record, evidence)
        except Exception as e:
            logger.error(f"Structured guess validation failed: {e}", exc_info=True)
            extractions_total.labels(provider=self.provider_name, status="failed").inc()
            return self.failed_result(f"Extraction failed: {str(e)}")

        extractions_total.labels(provider=self.provider_name, status="success").inc()
        extraction_confidence.labels(provider=self.provider_name).observe(confidence.overall)
        logger.info(f"Validated structured guess for invoice {record.invoice_number}")
        return ExtractionResult(
            invoice_data=record,
            confidence=confidence,
            success=True,
            provider=self.provider_name,
        )

    def build_record(self, guess: Mapping[str, Any]) -> tuple[InvoiceRecord, ExtractionEvidence]:
        """Map guess keys onto InvoiceRecord fields and reconcile the amounts."""
        data = self._normalize_keys(guess)
        update: dict[str, Any] = {}

        invoice_number = self._text(data.get("invoice_number"))
        if invoice_number:
            update["invoice_number"] = invoice_number
        supplier_name = self._text(data.get("supplier_name"))
        if supplier_name:
            update["supplier_name"] = supplier_name
        for name in ("supplier_address", "service_description"):
            value = self._text(data.get(name))
            if value:
                update[name] = value
        currency = self._text(data.get("currency"))
        if currency:
            update["currency"] = currency.upper()

        invoice_date = self._date(data.get("invoice_date"))
        if invoice_date:
            update["invoice_date"] = invoice_date
        for name in DATE_FIELDS:
            update[name] = self._date(data.get(name))

        for name in STRING_FIELDS:
            update[name] = self._text(data.get(name))
        iban = self._text(data.get("supplier_iban"))
        if iban:
            compact = re.sub(r"\s", "", iban).upper()
            if iban_is_valid(compact):
                update["supplier_iban"] = compact
            else:
                logger.warning("Discarding IBAN with invalid checksum from structured guess")

        update["has_reverse_charge"] = data.get("has_reverse_charge") is True
        update["is_intra_community_supply"] = data.get("is_intra_community_supply") is True

        positions = self._positions(data.get("positions"))
        totals = self._reconciliation.reconcile(
            self._amounts.parse(data.get("total_amount")),
            self._amounts.parse(data.get("net_amount")),
            {},
            positions,
            tax_amount=self._amounts.parse(data.get("tax_amount")),
            tax_rate=self._amounts.parse_rate(data.get("tax_rate")),
        )
        update.update(
            total_amount=totals.total_amount,
            net_amount=totals.net_amount,
            tax_amount=totals.tax_amount,
            tax_breakdown=totals.tax_breakdown,
            positions=positions,
        )

        record = InvoiceRecord.empty(currency=self.settings.default_currency).model_copy(update=update)
        return record, ExtractionEvidence(total_source=totals.total_source)

    @staticmethod
    def _normalize_keys(
        guess: Mapping[str, Any], aliases: Mapping[str, str] = KEY_ALIASES
    ) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key, value in guess.items():
            name = snake_case(str(key))
            data[aliases.get(name, name)] = value
        return data

    @staticmethod
    def _text(value: Any) -> str | None:
        if value is None or isinstance(value, bool | dict | list):
            return None
        text = str(value).strip()
        return None if text.lower() in _EMPTY_MARKERS else text

    def _date(self, value: Any) -> str | None:
        text = self._text(value)
        return self._dates.parse(text, style="absolute") if text else None

    def _positions(self, raw_positions: Any) -> list[PositionLineItem]:
        if not isinstance(raw_positions, list):
            return []

        items: list[PositionLineItem] = []
        for raw in raw_positions:
            if not isinstance(raw, Mapping):
                continue
            data = self._normalize_keys(raw, aliases={})
            quantity = self._amounts.parse(data.get("quantity"))
            total_price = self._amounts.parse(data.get("total_price"))
            unit_price = self._amounts.parse(data.get("unit_price"))
            if total_price is None and quantity is not None and unit_price is not None:
                total_price = quantity * unit_price
            if quantity is None or total_price is None or quantity <= 0 or total_price <= 0:
                logger.debug(f"Skipping position without quantity or total: {raw}")
                continue

            number = data.get("position")
            vat_rate = self._amounts.parse_rate(data.get("vat_rate"))
            try:
                items.append(
                    PositionLineItem(
                        position=number if isinstance(number, int) and number >= 1 else len(items) + 1,
                        description=self._text(data.get("description")) or "",
                        quantity=quantity,
                        unit=self._text(data.get("unit")) or "Stk",
                        unit_price=unit_price if unit_price is not None else total_price / quantity,
                        total_price=total_price,
                        vat_rate=vat_rate if vat_rate is not None else Decimal(self.settings.standard_vat_rate),
                        article_number=self._text(data.get("article_number")),
                    )
                )
            except ValidationError as e:
                logger.debug(f"Skipping invalid position: {e}")
        return items
