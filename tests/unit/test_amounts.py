"""Unit tests for amount parsing."""

from decimal import Decimal

import pytest

from invoice_engine.parsing.amounts import AmountParser, quantize, rate_key


@pytest.fixture
def parser() -> AmountParser:
    return AmountParser()


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("190,00 €", Decimal("190.00")),
        ("€ 1.190,00", Decimal("1190.00")),
        ("EUR 12.345.678,90", Decimal("12345678.90")),
        ("1234,5", Decimal("1234.5")),
        ("99.95", Decimal("99.95")),
    ],
)
def test_parse_amount_formats(parser: AmountParser, text: str, expected: Decimal) -> None:
    """Test German first, English second, naive fallback last."""
    assert parser.parse(text) == expected


def test_parse_zero_is_not_none(parser: AmountParser) -> None:
    """Test that zero is a valid amount."""
    result = parser.parse("0,00")

    assert result is not None
    assert result == 0


@pytest.mark.parametrize("value", ["not a number", "", "€", None, True, "1.2.3", float("nan")])
def test_parse_returns_none_for_non_numeric(parser: AmountParser, value: object) -> None:
    """Test that unparseable input yields None, never 0 or an exception."""
    assert parser.parse(value) is None  # type: ignore[arg-type]


def test_parse_accepts_numbers(parser: AmountParser) -> None:
    """Test numeric input from structured guesses."""
    assert parser.parse(19) == Decimal("19")
    assert parser.parse(1190.5) == Decimal("1190.5")
    assert parser.parse(Decimal("7.00")) == Decimal("7.00")


def test_parse_rate(parser: AmountParser) -> None:
    """Test tax rate parsing and bounds."""
    assert parser.parse_rate("19") == Decimal("19")
    assert parser.parse_rate("5,5 %") == Decimal("5.5")
    assert parser.parse_rate("120") is None
    assert parser.parse_rate(None) is None


def test_quantize_rounds_half_up() -> None:
    """Test cent rounding."""
    assert quantize(Decimal("2.345")) == Decimal("2.35")
    assert quantize(Decimal("2.344")) == Decimal("2.34")
    assert quantize(Decimal("1000")) == Decimal("1000.00")


@pytest.mark.parametrize(
    ("rate", "key"),
    [(Decimal("19"), "19"), (Decimal("19.00"), "19"), (Decimal("7"), "7"), (Decimal("5.50"), "5.5")],
)
def test_rate_key(rate: Decimal, key: str) -> None:
    """Test normalized breakdown keys."""
    assert rate_key(rate) == key
