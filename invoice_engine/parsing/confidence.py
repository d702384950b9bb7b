"""Heuristic confidence scoring for extracted invoices.

Scores are in [0, 1]. A field that was not found scores 0; a found field
scores higher the more specific the strategy that matched it was.
"""

import logging
import re
from dataclasses import dataclass

from invoice_engine.extraction.schema import NOT_FOUND, ConfidenceScoreSet, InvoiceRecord
from invoice_engine.parsing.patterns import FieldMatch
from invoice_engine.parsing.supplier import has_legal_form
from invoice_engine.parsing.tax import TotalSource

logger = logging.getLogger(__name__)

# Weights of the overall score
INVOICE_NUMBER_WEIGHT = 0.3
DATE_WEIGHT = 0.2
AMOUNT_WEIGHT = 0.3
SUPPLIER_WEIGHT = 0.2

# Scores of totals that were derived rather than matched
DERIVED_AMOUNT_SCORES: dict[str, float] = {
    "breakdown": 0.75,
    "net_and_tax": 0.7,
    "positions": 0.6,
}

_ALPHANUMERIC = re.compile(r"[A-Za-z0-9]")
_DATE_SHAPE = re.compile(r"\d{1,2}[./-]\d{1,2}[./-]\d{2,4}|\d{4}-\d{2}-\d{2}")
_AMOUNT_SHAPE = re.compile(r"€\s*[\d.,]+|\d+[,.]\d{2}")


@dataclass(frozen=True)
class ExtractionEvidence:
    """How the scored values were found.

    Attributes:
        invoice_number: Match of the invoice number strategy
        invoice_date: Match of the invoice date strategy
        total_amount: Match of the total amount strategy
        total_source: Where the reconciled total came from
    """

    invoice_number: FieldMatch | None = None
    invoice_date: FieldMatch | None = None
    total_amount: FieldMatch | None = None
    total_source: TotalSource | None = None


class ConfidenceScorer:
    """Computes a ConfidenceScoreSet for an extracted record."""

    def score(
        self,
        raw_text: str,
        record: InvoiceRecord,
        evidence: ExtractionEvidence | None = None,
    ) -> ConfidenceScoreSet:
        """Score an extracted record.

        Args:
            raw_text: Source text the record was extracted from
            record: Extracted record
            evidence: Matches behind the record; without it, values are
                corroborated against the source text only

        Returns:
            ConfidenceScoreSet with the weighted overall score
        """
        raw_text = raw_text or ""
        evidence = evidence or ExtractionEvidence()

        invoice_number = self._score_invoice_number(raw_text, record, evidence.invoice_number)
        date_score = self._score_date(raw_text, record, evidence.invoice_date)
        amount = self._score_amount(raw_text, record, evidence)
        supplier = self._score_supplier(record)

        overall = (
            invoice_number * INVOICE_NUMBER_WEIGHT
            + date_score * DATE_WEIGHT
            + amount * AMOUNT_WEIGHT
            + supplier * SUPPLIER_WEIGHT
        )
        scores = ConfidenceScoreSet(
            overall=round(min(overall, 1.0), 4),
            invoice_number=invoice_number,
            date=date_score,
            amount=amount,
            supplier=supplier,
        )
        logger.debug(f"Confidence: {scores.model_dump()}")
        return scores

    @staticmethod
    def _score_invoice_number(raw_text: str, record: InvoiceRecord, match: FieldMatch | None) -> float:
        number = record.invoice_number
        if not number or number == NOT_FOUND:
            return 0.0
        well_formed = len(_ALPHANUMERIC.findall(number)) >= 3
        if match is not None:
            return round(match.specificity * (1.0 if well_formed else 0.67), 4)
        if number in raw_text:
            return 0.95
        return 0.8 if well_formed else 0.5

    @staticmethod
    def _score_date(raw_text: str, record: InvoiceRecord, match: FieldMatch | None) -> float:
        if not record.invoice_date:
            return 0.0
        if match is not None and match.value in raw_text:
            shape = 1.0
        elif _DATE_SHAPE.search(raw_text):
            shape = 0.8
        else:
            shape = 0.5
        specificity = match.specificity if match is not None else 1.0
        return round(specificity * shape, 4)

    @staticmethod
    def _score_amount(raw_text: str, record: InvoiceRecord, evidence: ExtractionEvidence) -> float:
        if record.total_amount <= 0:
            return 0.0
        shape = 1.0 if _AMOUNT_SHAPE.search(raw_text) else 0.5

        if evidence.total_amount is not None:
            return round(evidence.total_amount.specificity * shape, 4)
        if evidence.total_source in DERIVED_AMOUNT_SCORES:
            return DERIVED_AMOUNT_SCORES[evidence.total_source]
        # Total given without a pattern match, corroborated by the source text only
        return 0.85 if shape == 1.0 else 0.4

    @staticmethod
    def _score_supplier(record: InvoiceRecord) -> float:
        name = record.supplier_name
        if not name or name == NOT_FOUND:
            return 0.0
        score = 0.7 if len(name) > 5 else 0.5
        if record.supplier_address:
            score += 0.1
        if has_legal_form(name):
            score += 0.1
        return round(min(score, 1.0), 4)
