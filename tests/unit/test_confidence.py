"""Unit tests for confidence scoring."""

from decimal import Decimal

import pytest

from invoice_engine.extraction.schema import ConfidenceScoreSet, InvoiceRecord
from invoice_engine.parsing.confidence import ConfidenceScorer, ExtractionEvidence
from invoice_engine.parsing.patterns import FieldMatch

RAW_TEXT = (
    "Muster Bau GmbH\nHauptstraße 12\n10115 Berlin\n"
    "Rechnungsnummer: RE-2024-001\nRechnungsdatum: 15.03.2024\nGesamtbetrag: 1.190,00 €"
)


def _match(field: str, value: str, specificity: float, generic: bool = False) -> FieldMatch:
    return FieldMatch(
        field=field, value=value, strategy="test", specificity=specificity, generic=generic, raw=value
    )


@pytest.fixture
def scorer() -> ConfidenceScorer:
    return ConfidenceScorer()


@pytest.fixture
def record() -> InvoiceRecord:
    return InvoiceRecord(
        invoice_number="RE-2024-001",
        invoice_date="2024-03-15",
        supplier_name="Muster Bau GmbH",
        supplier_address="Hauptstraße 12, 10115 Berlin",
        total_amount=Decimal("1190.00"),
    )


@pytest.fixture
def evidence() -> ExtractionEvidence:
    return ExtractionEvidence(
        invoice_number=_match("invoice_number", "RE-2024-001", 0.95),
        invoice_date=_match("invoice_date", "15.03.2024", 0.95),
        total_amount=_match("total_amount", "1.190,00", 0.95),
        total_source="matched",
    )


def test_empty_record_scores_zero(scorer: ConfidenceScorer) -> None:
    """Test that missing fields contribute nothing."""
    assert scorer.score(RAW_TEXT, InvoiceRecord()) == ConfidenceScoreSet()


def test_fully_matched_record(
    scorer: ConfidenceScorer, record: InvoiceRecord, evidence: ExtractionEvidence
) -> None:
    """Test scores and weighted overall for labeled matches."""
    scores = scorer.score(RAW_TEXT, record, evidence)

    assert scores.invoice_number == pytest.approx(0.95)
    assert scores.date == pytest.approx(0.95)
    assert scores.amount == pytest.approx(0.95)
    assert scores.supplier == pytest.approx(0.9)
    assert scores.overall == pytest.approx(0.95 * 0.3 + 0.95 * 0.2 + 0.95 * 0.3 + 0.9 * 0.2)


def test_labeled_match_scores_higher_than_generic(
    scorer: ConfidenceScorer, record: InvoiceRecord, evidence: ExtractionEvidence
) -> None:
    """Test that confidence follows strategy specificity."""
    generic = ExtractionEvidence(
        invoice_number=_match("invoice_number", "RE-2024-001", 0.4, generic=True),
        invoice_date=_match("invoice_date", "15.03.2024", 0.5, generic=True),
        total_amount=_match("total_amount", "1.190,00", 0.6, generic=True),
    )

    labeled = scorer.score(RAW_TEXT, record, evidence)
    guessed = scorer.score(RAW_TEXT, record, generic)

    assert guessed.invoice_number < labeled.invoice_number
    assert guessed.date < labeled.date
    assert guessed.amount < labeled.amount
    assert guessed.overall < labeled.overall


def test_short_invoice_number_is_penalized(scorer: ConfidenceScorer) -> None:
    """Test the well-formedness factor."""
    record = InvoiceRecord(invoice_number="12")
    evidence = ExtractionEvidence(invoice_number=_match("invoice_number", "12", 0.6))

    assert scorer.score("Nr.: 12", record, evidence).invoice_number == pytest.approx(0.402)


def test_scores_without_evidence(scorer: ConfidenceScorer, record: InvoiceRecord) -> None:
    """Test corroboration against the source text only."""
    scores = scorer.score(RAW_TEXT, record)

    assert scores.invoice_number == pytest.approx(0.95)
    assert scores.date == pytest.approx(0.8)
    assert scores.amount == pytest.approx(0.85)


def test_invoice_number_not_in_text(scorer: ConfidenceScorer) -> None:
    """Test a value that cannot be found in the source text."""
    record = InvoiceRecord(invoice_number="RE-77")

    assert scorer.score("Keine Nummer", record).invoice_number == pytest.approx(0.8)


@pytest.mark.parametrize(("source", "expected"), [("breakdown", 0.75), ("net_and_tax", 0.7), ("positions", 0.6)])
def test_derived_totals_score_below_matched(
    scorer: ConfidenceScorer, record: InvoiceRecord, source: str, expected: float
) -> None:
    """Test amount scores of derived totals."""
    scores = scorer.score(RAW_TEXT, record, ExtractionEvidence(total_source=source))  # type: ignore[arg-type]

    assert scores.amount == pytest.approx(expected)


@pytest.mark.parametrize(
    ("name", "address", "expected"),
    [
        ("NOT_FOUND", "", 0.0),
        ("Bäcker", "", 0.7),
        ("Hans", "", 0.5),
        ("Hans Müller", "Ring 1, 12345 Ort", 0.8),
        ("Muster Bau GmbH", "", 0.8),
        ("Muster Bau GmbH", "Hauptstraße 12, 10115 Berlin", 0.9),
    ],
)
def test_supplier_score(scorer: ConfidenceScorer, name: str, address: str, expected: float) -> None:
    """Test name length, address and legal form factors."""
    record = InvoiceRecord(supplier_name=name, supplier_address=address)

    assert scorer.score("", record).supplier == pytest.approx(expected)


def test_scores_are_bounded(scorer: ConfidenceScorer, record: InvoiceRecord) -> None:
    """Test that all scores stay within [0, 1]."""
    evidence = ExtractionEvidence(
        invoice_number=_match("invoice_number", "RE-2024-001", 1.0),
        invoice_date=_match("invoice_date", "15.03.2024", 1.0),
        total_amount=_match("total_amount", "1.190,00", 1.0),
    )

    scores = scorer.score(RAW_TEXT, record, evidence)

    for value in scores.model_dump().values():
        assert 0.0 <= value <= 1.0
