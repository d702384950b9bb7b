"""Unit tests for supplier identification."""

import time

import pytest

from invoice_engine.parsing.supplier import SupplierIdentifier, find_service_description, has_legal_form


@pytest.fixture
def identifier() -> SupplierIdentifier:
    return SupplierIdentifier()


def test_identify_name_and_address(identifier: SupplierIdentifier) -> None:
    """Test the usual letterhead layout."""
    lines = ["Muster Bau GmbH", "Hauptstraße 12", "10115 Berlin", "", "Rechnung", "Rechnungsnummer: RE-1"]

    supplier = identifier.identify(lines)

    assert supplier.name == "Muster Bau GmbH"
    assert supplier.address == "Hauptstraße 12, 10115 Berlin"


def test_identify_address_on_one_line(identifier: SupplierIdentifier) -> None:
    """Test street and postal code on the same line."""
    supplier = identifier.identify(["Schreinerei Holzwurm", "Musterweg 5a, 80331 München"])

    assert supplier.address == "Musterweg 5a, 80331 München"


def test_identify_address_fallback_to_postal_code_line(identifier: SupplierIdentifier) -> None:
    """Test a postal-code line without a recognizable street."""
    supplier = identifier.identify(["Beispiel Handel GmbH", "Postfach 1234", "20095 Hamburg"])

    assert supplier.address == "Postfach 1234, 20095 Hamburg"


def test_identify_skips_invoice_vocabulary(identifier: SupplierIdentifier) -> None:
    """Test that headings, contact lines and numeric lines are not names."""
    lines = ["RECHNUNG", "Tel. 030 123456", "12345 Berlin Mitte", "Elektro Schmidt e.K."]

    assert identifier.identify(lines).name == "Elektro Schmidt e.K."


def test_identify_respects_scan_window() -> None:
    """Test that only the top of the document is searched."""
    identifier = SupplierIdentifier(name_scan_lines=2)

    assert identifier.identify(["Seite 1", "Kopie", "Muster Bau GmbH"]).name is None


def test_identify_without_supplier(identifier: SupplierIdentifier) -> None:
    """Test that nothing is guessed for documents without a letterhead."""
    supplier = identifier.identify(["Rechnung Nr. 1", "Datum: 01.01.2024", "Summe 10,00 €"])

    assert supplier.name is None
    assert supplier.address is None


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Muster Bau GmbH", True),
        ("Müller GmbH & Co. KG", True),
        ("Beispiel AG", True),
        ("Elektro Schmidt e.K.", True),
        ("Acme Ltd.", True),
        ("Agentur Meyer", False),
        ("Hans Müller", False),
    ],
)
def test_has_legal_form(name: str, expected: bool) -> None:
    """Test legal form detection."""
    assert has_legal_form(name) is expected


def test_find_service_description() -> None:
    """Test the first descriptive body line after the letterhead."""
    lines = [
        "Muster Bau GmbH",
        "Hauptstraße 12",
        "10115 Berlin",
        "Kunde",
        "Datum",
        "Kurz",
        "100,00 Material und Zubehör gesamt",
        "Sanierung des Badezimmers im Obergeschoss",
    ]

    assert find_service_description(lines) == "Sanierung des Badezimmers im Obergeschoss"


def test_find_service_description_short_document() -> None:
    """Test that a letterhead alone has no description."""
    assert find_service_description(["Muster Bau GmbH", "Hauptstraße 12", "10115 Berlin"]) is None


@pytest.mark.parametrize(
    "line", ["Kundennummer: K-4711", "zahlbar innerhalb 14 Tage", "Ansprechpartner: Max Muster"]
)
def test_identify_skips_label_lines(identifier: SupplierIdentifier, line: str) -> None:
    """Test that labeled values and payment terms are not names."""
    assert identifier.identify([line, "Elektro Schmidt e.K."]).name == "Elektro Schmidt e.K."


@pytest.mark.parametrize("line", ["a " * 20000, "a" * 40000, "Muster " * 6000 + "Hauptstraße 1"])
def test_identify_long_line_without_breaks(identifier: SupplierIdentifier, line: str) -> None:
    """Test that text without line breaks is scanned in linear time."""
    started = time.perf_counter()

    supplier = identifier.identify([line])

    assert supplier.address is None
    assert time.perf_counter() - started < 2.0


def test_street_with_several_words(identifier: SupplierIdentifier) -> None:
    """Test multi-word street names."""
    supplier = identifier.identify(["Schreinerei Holzwurm", "Am Alten Markt Ring 4", "80331 München"])

    assert supplier.address == "Am Alten Markt Ring 4, 80331 München"
