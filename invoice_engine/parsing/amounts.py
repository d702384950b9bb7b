"""Locale-aware parsing of monetary amounts.

German notation (``1.234,56``) is checked before English notation
(``1,234.56``) because German invoices dominate the input. Anything else
falls back to a tolerant comma-to-dot conversion.
"""

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# Highest VAT rate accepted as plausible when it is inferred from amounts
MAX_VAT_RATE = Decimal("25")

GERMAN_FORMAT = re.compile(r"^\d{1,3}(?:\.\d{3})*,\d{2}$")
ENGLISH_FORMAT = re.compile(r"^\d{1,3}(?:,\d{3})*\.\d{2}$")
_NOISE = re.compile(r"[^\d,.]")


def quantize(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class AmountParser:
    """Parses amount literals into Decimal values."""

    def parse(self, amount_string: str | int | float | Decimal | None) -> Decimal | None:
        """Parse an amount literal.

        Args:
            amount_string: Text such as ``"1.190,00 €"``; numbers are accepted as-is

        Returns:
            Decimal value, or None if the input holds no number. Zero is a
            valid result and distinct from None.
        """
        if amount_string is None or isinstance(amount_string, bool):
            return None
        if isinstance(amount_string, Decimal):
            return amount_string if amount_string.is_finite() else None
        if isinstance(amount_string, int | float):
            return self._from_number(amount_string)
        if not isinstance(amount_string, str):
            return None

        cleaned = _NOISE.sub("", amount_string)
        if not any(char.isdigit() for char in cleaned):
            return None

        if GERMAN_FORMAT.match(cleaned):
            candidate = cleaned.replace(".", "").replace(",", ".")
        elif ENGLISH_FORMAT.match(cleaned):
            candidate = cleaned.replace(",", "")
        else:
            candidate = cleaned.replace(",", ".")

        try:
            return Decimal(candidate)
        except InvalidOperation:
            logger.debug(f"Unparseable amount: {amount_string!r}")
            return None

    def parse_rate(self, rate_string: str | int | float | Decimal | None) -> Decimal | None:
        """Parse a tax rate such as ``"19"``, ``"5,5"`` or ``"7 %"``."""
        rate = self.parse(rate_string)
        if rate is None or rate < 0 or rate > 100:
            return None
        return rate

    @staticmethod
    def _from_number(value: int | float) -> Decimal | None:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return None
        return result if result.is_finite() else None


def rate_key(rate: Decimal) -> str:
    """Normalized breakdown key for a tax rate: ``19``, ``7``, ``5.5``."""
    normalized = rate.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, "f")
