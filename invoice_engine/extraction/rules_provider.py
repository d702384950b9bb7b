"""Rule-based extraction provider for German invoices.

Runs the text pipeline over raw OCR output:

    normalize -> field patterns / supplier / positions -> tax reconciliation
    -> confidence scoring

Every stage takes the record built so far and returns a new one, so each
stage can be tested in isolation and no partially filled record is shared.
Missing data never raises: absent fields keep their sentinel or None.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from invoice_engine.extraction.base import ExtractionProvider, ExtractionResult
from invoice_engine.extraction.metrics import (
    extraction_confidence,
    extraction_duration_seconds,
    extractions_total,
    fields_extracted_total,
)
from invoice_engine.extraction.schema import NOT_FOUND, InvoiceRecord
from invoice_engine.parsing.amounts import AmountParser
from invoice_engine.parsing.confidence import ConfidenceScorer, ExtractionEvidence
from invoice_engine.parsing.dates import DateParser
from invoice_engine.parsing.normalizer import TextNormalizer
from invoice_engine.parsing.patterns import FieldMatch, PatternExtractor
from invoice_engine.parsing.positions import PositionTableExtractor
from invoice_engine.parsing.supplier import SupplierIdentifier, find_service_description
from invoice_engine.parsing.tax import ReconciledTotals, TaxReconciliation
from invoice_engine.shared.config import Settings

logger = logging.getLogger(__name__)

Clock = Callable[[], date]

# Pattern fields copied verbatim onto the record attribute of the same name
TEXT_FIELDS: tuple[str, ...] = (
    "supplier_vat_id",
    "supplier_tax_number",
    "supplier_iban",
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

# Optional record fields reported to the fields-found metric
OPTIONAL_FIELDS: tuple[str, ...] = TEXT_FIELDS + (
    "service_date",
    "service_period_start",
    "due_date",
)


@dataclass(frozen=True)
class Document:
    """Normalized input shared by all pipeline stages."""

    text: str
    lines: list[str]
    matches: dict[str, FieldMatch]
    today: date


class RuleBasedExtractionProvider(ExtractionProvider):
    """Pattern-based extraction over OCR text.

    No model, no network: every decision is made by the ordered pattern
    libraries and heuristics of ``invoice_engine.parsing``.
    """

    def __init__(self, settings: Settings, clock: Clock | None = None) -> None:
        """Initialize rule-based provider.

        Args:
            settings: Engine settings
            clock: Returns "today" for relative due dates (defaults to date.today)
        """
        super().__init__(settings)
        self._clock = clock or date.today
        self._normalizer = TextNormalizer()
        self._patterns = PatternExtractor()
        self._amounts = AmountParser()
        self._dates = DateParser(settings.two_digit_year_pivot)
        self._supplier = SupplierIdentifier(
            settings.supplier_name_scan_lines, settings.supplier_address_scan_lines
        )
        self._positions = PositionTableExtractor(settings.standard_vat_rate)
        self._reconciliation = TaxReconciliation(
            settings.standard_vat_rate, settings.reconciliation_tolerance
        )
        self._scorer = ConfidenceScorer()

    @property
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier 'rules'
        """
        return "rules"

    def is_available(self) -> bool:
        """Rule-based extraction has no external dependencies."""
        return True

    def extract_invoice_fields(self, ocr_text: str) -> ExtractionResult:
        """Extract structured invoice data from OCR text.

        Args:
            ocr_text: Raw text from OCR engine

        Returns:
            ExtractionResult; failed with an empty record for unusable input
        """
        if not isinstance(ocr_text, str) or not ocr_text.strip():
            extractions_total.labels(provider=self.provider_name, status="failed").inc()
            return self.failed_result("Empty OCR text provided")

        start = time.perf_counter()
        try:
            text = self._normalizer.normalize(ocr_text)
            if not text:
                extractions_total.labels(provider=self.provider_name, status="failed").inc()
                return self.failed_result("No text left after normalization")

            record, evidence = self.run_pipeline(text)
            confidence = self._scorer.score(ocr_text, record, evidence)
        except Exception as e:
            logger.error(f"Rule-based extraction failed: {e}", exc_info=True)
            extractions_total.labels(provider=self.provider_name, status="failed").inc()
            return self.failed_result(f"Extraction failed: {str(e)}")

        duration = time.perf_counter() - start
        extractions_total.labels(provider=self.provider_name, status="success").inc()
        extraction_duration_seconds.labels(provider=self.provider_name).observe(duration)
        extraction_confidence.labels(provider=self.provider_name).observe(confidence.overall)
        for name in OPTIONAL_FIELDS:
            if getattr(record, name) is not None:
                fields_extracted_total.labels(field=name).inc()

        logger.info(
            f"Extracted invoice {record.invoice_number} "
            f"(total {record.total_amount} {record.currency}, confidence {confidence.overall:.2f})"
        )
        return ExtractionResult(
            invoice_data=record,
            confidence=confidence,
            success=True,
            provider=self.provider_name,
        )

    def run_pipeline(self, text: str) -> tuple[InvoiceRecord, ExtractionEvidence]:
        """Run all extraction stages over normalized text.

        Args:
            text: Output of TextNormalizer.normalize

        Returns:
            Tuple of (record, evidence for confidence scoring)
        """
        document = Document(
            text=text,
            lines=text.split("\n"),
            matches=self._patterns.extract_all(text),
            today=self._clock(),
        )

        record = InvoiceRecord.empty(currency=self.settings.default_currency)
        record = self.apply_identifiers(record, document)
        record = self.apply_dates(record, document)
        record = self.apply_supplier(record, document)
        record, totals = self.apply_amounts(record, document)
        record = self.apply_description(record, document)

        matches = document.matches
        evidence = ExtractionEvidence(
            invoice_number=matches.get("invoice_number") if record.invoice_number != NOT_FOUND else None,
            invoice_date=matches.get("invoice_date") if record.invoice_date else None,
            total_amount=matches.get("total_amount")
            if totals.total_source in ("matched", "fallback")
            else None,
            total_source=totals.total_source,
        )
        return record, evidence

    def apply_identifiers(self, record: InvoiceRecord, document: Document) -> InvoiceRecord:
        """Invoice number, currency, references, tax notes and contact fields."""
        matches = document.matches
        update: dict[str, object] = {
            name: matches[name].value for name in TEXT_FIELDS if name in matches
        }
        if "invoice_number" in matches:
            update["invoice_number"] = matches["invoice_number"].value
        if "currency" in matches:
            update["currency"] = matches["currency"].value
        update["has_reverse_charge"] = "reverse_charge" in matches
        update["is_intra_community_supply"] = "intra_community_supply" in matches
        return record.model_copy(update=update)

    def apply_dates(self, record: InvoiceRecord, document: Document) -> InvoiceRecord:
        """Invoice, service and due dates as ISO strings."""
        matches = document.matches
        update: dict[str, object] = {}

        invoice_date = self._parse_date(matches.get("invoice_date"))
        if invoice_date:
            update["invoice_date"] = invoice_date

        service_date = self._parse_date(matches.get("service_date"))
        if service_date:
            update["service_date"] = service_date

        period = matches.get("service_period")
        if period is not None and len(period.groups) == 2:
            start = self._dates.parse(period.groups[0], style="absolute")
            end = self._dates.parse(period.groups[1], style="absolute")
            if start and end:
                update["service_period_start"] = start
                update["service_period_end"] = end

        due_date = self._parse_date(matches.get("due_date"))
        if due_date is None and "due_days" in matches:
            due_date = self._dates.parse(
                matches["due_days"].value, style="relative", today=document.today
            )
        if due_date:
            update["due_date"] = due_date

        return record.model_copy(update=update)

    def apply_supplier(self, record: InvoiceRecord, document: Document) -> InvoiceRecord:
        """Supplier name and address from the letterhead."""
        supplier = self._supplier.identify(document.lines)
        return record.model_copy(
            update={
                "supplier_name": supplier.name or NOT_FOUND,
                "supplier_address": supplier.address or "",
            }
        )

    def apply_amounts(
        self, record: InvoiceRecord, document: Document
    ) -> tuple[InvoiceRecord, ReconciledTotals]:
        """Totals, tax breakdown and line items."""
        matches = document.matches
        tax_rate = self._amounts.parse_rate(matches["tax_rate"].value) if "tax_rate" in matches else None
        # Rows without a rate column are taxed at the rate the invoice names
        positions = self._positions.extract(document.text, default_vat_rate=tax_rate)

        total_match = matches.get("total_amount")
        labeled_total = total_match is not None and not total_match.generic
        totals = self._reconciliation.reconcile(
            self._match_amount(total_match) if labeled_total else None,
            self._match_amount(matches.get("net_amount")),
            self._patterns.extract_tax_breakdown(document.text),
            positions,
            tax_amount=self._match_amount(matches.get("tax_amount")),
            tax_rate=tax_rate,
            fallback_total=None if labeled_total else self._match_amount(total_match),
        )
        if totals.total_source == "none":
            logger.warning("No total amount found")

        record = record.model_copy(
            update={
                "total_amount": totals.total_amount,
                "net_amount": totals.net_amount,
                "tax_amount": totals.tax_amount,
                "tax_breakdown": totals.tax_breakdown,
                "positions": positions,
            }
        )
        return record, totals

    def apply_description(self, record: InvoiceRecord, document: Document) -> InvoiceRecord:
        """Short service description: first line item, else first body line."""
        if record.positions:
            description = record.positions[0].description
        else:
            description = find_service_description(document.lines) or ""
        return record.model_copy(update={"service_description": description})

    def _parse_date(self, match: FieldMatch | None) -> str | None:
        if match is None:
            return None
        return self._dates.parse(match.value, style="absolute")

    def _match_amount(self, match: FieldMatch | None) -> Decimal | None:
        if match is None:
            return None
        return self._amounts.parse(match.value)
