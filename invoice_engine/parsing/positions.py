"""Line item extraction from invoice position tables.

Recognized row layouts:
- ``1 Montagearbeiten 8 Std 45,00 360,00 19%`` (position number optional)
- ``Fliesen 12,5 m² x 40,00 = 500,00``
- ``A-1001 Kabel NYM 5 Stk 2,50 12,50`` (article number first)
"""

import logging
import re
from decimal import Decimal

from invoice_engine.extraction.schema import PositionLineItem
from invoice_engine.parsing.amounts import AmountParser

logger = logging.getLogger(__name__)

_PRICE = r"€?\s*(\d{1,3}(?:\.\d{3})+,\d{2}|\d{1,3}(?:,\d{3})+\.\d{2}|\d+[.,]\d{2})\s*€?"
_QUANTITY = r"(\d+(?:[.,]\d{1,3})?)"
_UNIT = r"(Stk\.?|Stück|Std\.?|Stunden?|h|m²|m2|m³|m3|lfm|qm|m|kg|t|l|Psch\.?|pauschal|PA)"
_RATE = r"(?:\s+(\d{1,2}(?:[.,]\d{1,2})?)\s*%)?"

MULTIPLIED_ROW = re.compile(
    r"^(?:(\d{1,3})[.)]?\s+)?(.+?)\s+" + _QUANTITY + r"\s*(?:" + _UNIT + r"\s*)?[x×*]\s*"
    + _PRICE + r"\s*=\s*" + _PRICE + _RATE + r"\s*$",
    re.IGNORECASE,
)
NUMBERED_ROW = re.compile(
    r"^(\d{1,3})[.)]?\s+([A-Za-zÄÖÜäöüß].*?)\s+" + _QUANTITY + r"\s*(?:" + _UNIT + r"\s+)?"
    + _PRICE + r"\s+" + _PRICE + _RATE + r"\s*$",
    re.IGNORECASE,
)
ARTICLE_ROW = re.compile(
    r"^((?=[A-Z0-9-]*[A-Z])(?=[A-Z0-9-]*\d)[A-Z0-9][A-Z0-9-]{2,}|\d{4,})\s+(.+?)\s+" + _QUANTITY
    + r"\s*(?:" + _UNIT + r"\s+)?" + _PRICE + r"\s+" + _PRICE + _RATE + r"\s*$"
)
PLAIN_ROW = re.compile(
    r"^()([A-Za-zÄÖÜäöüß].*?)\s+" + _QUANTITY + r"\s*(?:" + _UNIT + r"\s+)?"
    + _PRICE + r"\s+" + _PRICE + _RATE + r"\s*$",
    re.IGNORECASE,
)

# Totals and tax summary rows share the row shape but are not positions
SUMMARY_ROW = re.compile(
    r"\b(?:zwischensumme|summe|gesamtbetrag|gesamtsumme|gesamt|total|subtotal|netto|brutto|mwst|ust"
    r"|umsatzsteuer|mehrwertsteuer|zu\s+zahlen|zahlbetrag|endbetrag|übertrag|skonto)\b",
    re.IGNORECASE,
)

_ROW_LAYOUTS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("multiplied", MULTIPLIED_ROW),
    ("numbered", NUMBERED_ROW),
    ("article", ARTICLE_ROW),
    ("plain", PLAIN_ROW),
)


class PositionTableExtractor:
    """Extracts PositionLineItems from the rows of an invoice table."""

    def __init__(self, default_vat_rate: Decimal | int = 19) -> None:
        """Initialize extractor.

        Args:
            default_vat_rate: VAT rate of rows without an explicit rate column
        """
        self.default_vat_rate = Decimal(default_vat_rate)
        self._amounts = AmountParser()

    def extract(self, raw_text: str, default_vat_rate: Decimal | None = None) -> list[PositionLineItem]:
        """Extract all position rows.

        Position numbers are taken from the source as long as they run
        without gaps; otherwise the table is renumbered from its first
        number in document order.

        Args:
            raw_text: Normalized invoice text with line breaks
            default_vat_rate: Rate for rows without a rate column, overriding
                the extractor default (e.g. the rate the invoice names)

        Returns:
            Line items in document order, possibly empty
        """
        if not raw_text:
            return []

        vat_rate = default_vat_rate if default_vat_rate is not None else self.default_vat_rate
        items: list[PositionLineItem] = []
        for line in raw_text.split("\n"):
            line = line.strip()
            if not line or SUMMARY_ROW.search(line):
                continue
            previous = items[-1].position if items else 0
            item = self._parse_row(line, previous, vat_rate)
            if item is not None:
                items.append(item)

        if items:
            items = self._contiguous(items)
            logger.debug(f"Extracted {len(items)} position(s)")
        return items

    @staticmethod
    def _contiguous(items: list[PositionLineItem]) -> list[PositionLineItem]:
        first = items[0].position
        if all(item.position == first + index for index, item in enumerate(items)):
            return items
        logger.debug("Renumbering positions with gaps in the source numbering")
        return [item.model_copy(update={"position": first + index}) for index, item in enumerate(items)]

    def _parse_row(self, line: str, previous: int, vat_rate: Decimal) -> PositionLineItem | None:
        for layout, pattern in _ROW_LAYOUTS:
            match = pattern.match(line)
            if match is None:
                continue
            lead, description, quantity_text, unit, unit_price_text, total_text, rate_text = match.groups()

            quantity = self._amounts.parse(quantity_text)
            unit_price = self._amounts.parse(unit_price_text)
            total_price = self._amounts.parse(total_text)
            if quantity is None or unit_price is None or total_price is None:
                return None
            if quantity <= 0 or total_price <= 0:
                logger.debug(f"Rejected {layout} row without quantity or total: {line!r}")
                return None

            number, article_number = previous + 1, None
            if layout == "article":
                article_number = lead
            elif lead and int(lead) >= 1:
                number = int(lead)

            rate = self._amounts.parse_rate(rate_text) if rate_text else None
            return PositionLineItem(
                position=number,
                description=description.strip(" -:"),
                quantity=quantity,
                unit=unit.rstrip(".") if unit else "Stk",
                unit_price=unit_price,
                total_price=total_price,
                vat_rate=rate if rate is not None else vat_rate,
                article_number=article_number,
            )
        return None
