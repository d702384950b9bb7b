"""Unit tests for OCR text normalization."""

import pytest

from invoice_engine.parsing.normalizer import OCR_CORRECTIONS, TextNormalizer


@pytest.fixture
def normalizer() -> TextNormalizer:
    return TextNormalizer()


def test_normalize_fixes_ocr_misreads(normalizer: TextNormalizer) -> None:
    """Test the correction table for invoice vocabulary."""
    text = "Rechnunq Nr. 123\nDaturn: 01.02.2024\nSurnme 10,00\nMuster GrnbH\nl nvoice"

    assert normalizer.normalize(text) == (
        "Rechnung Nr. 123\nDatum: 01.02.2024\nSumme 10,00\nMuster GmbH\nInvoice"
    )


def test_normalize_decodes_html(normalizer: TextNormalizer) -> None:
    """Test that markup becomes line breaks and entities are decoded."""
    html = "<p>Rechnungsdatum:&nbsp;15.03.2024</p><p>Gesamtbetrag: 1.190,00&euro;</p>"

    assert normalizer.normalize(html) == "Rechnungsdatum: 15.03.2024\nGesamtbetrag: 1.190,00 €"


def test_normalize_decodes_entities_without_markup(normalizer: TextNormalizer) -> None:
    """Test that entities are decoded even in plain text."""
    assert normalizer.normalize("Stra&szlig;e 5, M&uuml;nchen") == "Straße 5, München"


def test_normalize_repairs_mojibake(normalizer: TextNormalizer) -> None:
    """Test repair of UTF-8 text decoded as cp1252."""
    assert normalizer.normalize("MÃ¼ller GmbH\nSumme: 100,00 â‚¬") == "Müller GmbH\nSumme: 100,00 €"


def test_normalize_splits_run_together_amounts(normalizer: TextNormalizer) -> None:
    """Test that labels, amounts and currency symbols are separated."""
    assert normalizer.normalize("Gesamtbetrag1.190,00€") == "Gesamtbetrag 1.190,00 €"
    assert normalizer.normalize("Summe: €250,00") == "Summe: € 250,00"


def test_normalize_collapses_whitespace_and_keeps_lines(normalizer: TextNormalizer) -> None:
    """Test whitespace handling."""
    text = "  Rechnung   Nr:\t 42  \r\n\r\nDatum  heute "

    assert normalizer.normalize(text) == "Rechnung Nr: 42\n\nDatum heute"


def test_normalize_drops_trailing_period_after_tax_label(normalizer: TextNormalizer) -> None:
    """Test the MwSt. correction."""
    assert normalizer.normalize("zzgl. 19% MwSt. 190,00") == "zzgl. 19% MwSt 190,00"


@pytest.mark.parametrize("value", [None, "", 123])
def test_normalize_never_fails(normalizer: TextNormalizer, value: object) -> None:
    """Test that non-text input yields an empty string."""
    assert normalizer.normalize(value) == ""  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "text",
    [
        "Rechnunq  Nr. 1\r\nGesamtbetrag1.190,00€",
        "<div>MÃ¼ller&amp;Sohn</div><br/>Summe&nbsp;10,00",
        "&amp;auml; &lt;br&gt; Daturn",
        "MwSt.. 19 %\n\n\n  l nvoice 7",
        "Plain text without anything to fix",
    ],
)
def test_normalize_is_idempotent(normalizer: TextNormalizer, text: str) -> None:
    """Test normalize(normalize(x)) == normalize(x)."""
    once = normalizer.normalize(text)

    assert normalizer.normalize(once) == once


def test_custom_correction_table() -> None:
    """Test that the correction table can be replaced."""
    normalizer = TextNormalizer(corrections=())

    assert normalizer.normalize("Rechnunq") == "Rechnunq"
    assert len(OCR_CORRECTIONS) > 0
