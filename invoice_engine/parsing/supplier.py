"""Supplier identification from the letterhead of an invoice.

The supplier is not labeled on most invoices; it is the first prominent
line of the letterhead. The heuristics only look at the top of the document
and rely on the line structure kept by the normalizer.
"""

import logging
import re
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

# Lines that carry invoice vocabulary instead of a company name
SUPPLIER_STOPLIST = re.compile(
    r"rechnung|invoice|datum|total|mwst|\bust\b|€|\btel\b|telefon|\bfax\b|e-?mail|www"
    r"|betrag|summe|iban|\bbic\b|steuer|gesamt|menge|einheit|beschreibung|\bpos\b|\bseite\b"
    r"|nummer|\bnr\b|zahlbar|zahlungsziel|lieferschein",
    re.IGNORECASE,
)
# "Label: value" lines
LABEL_LINE = re.compile(r"^[A-Za-zÄÖÜäöüß][A-Za-zÄÖÜäöüß .-]{0,30}:\s")

LEGAL_FORM = re.compile(
    r"\b(?:GmbH\s*&\s*Co\.?\s*KG|GmbH|AG|KG|OHG|GbR|UG|e\.\s?K\.|e\.\s?V\.|Ltd\.?|Inc\.?)(?!\w)"
)

# At most four words before the street keyword, starting at a word boundary
STREET_LINE = re.compile(
    r"(?<![\w.-])((?:[A-Za-zÄÖÜäöüß.-]+ ){0,4}[A-Za-zÄÖÜäöüß.-]*"
    r"(?:straße|strasse|str\.|weg|platz|gasse|allee|ring|damm|ufer)"
    r"\s*\d+\s?[a-zA-Z]?(?:\s*-\s*\d+)?)",
    re.IGNORECASE,
)
POSTAL_CITY = re.compile(r"(?<!\d)(\d{5}\s+[A-ZÄÖÜ][A-Za-zÄÖÜäöüß .-]+)")

_LETTER = re.compile(r"[A-Za-zÄÖÜäöüß]")
_PRICE_START = re.compile(r"^\d+[.,]\d{2}")
_MIN_NAME_LENGTH = 10
_MAX_ADDRESS_LINE_LENGTH = 120
_MIN_DESCRIPTION_LENGTH = 20
_DESCRIPTION_WINDOW = (5, 20)


class SupplierInfo(BaseModel):
    """Supplier name and address found in the letterhead."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    address: str | None = None


def has_legal_form(name: str) -> bool:
    """Check if a company name carries a German or English legal form."""
    return bool(LEGAL_FORM.search(name))


class SupplierIdentifier:
    """Finds supplier name and address in the first lines of an invoice."""

    def __init__(self, name_scan_lines: int = 10, address_scan_lines: int = 15) -> None:
        """Initialize identifier.

        Args:
            name_scan_lines: Number of non-empty lines searched for the name
            address_scan_lines: Number of non-empty lines searched for the address
        """
        self.name_scan_lines = name_scan_lines
        self.address_scan_lines = address_scan_lines

    def identify(self, lines: Sequence[str]) -> SupplierInfo:
        """Identify the supplier.

        Args:
            lines: Lines of the normalized invoice text

        Returns:
            SupplierInfo; name and address are None when not found
        """
        content = [line.strip() for line in lines if line and line.strip()]
        name = self._find_name(content[: self.name_scan_lines])
        address = self._find_address(content[: self.address_scan_lines])

        if name is None:
            logger.debug(f"No supplier line in the first {self.name_scan_lines} lines")
        return SupplierInfo(name=name, address=address)

    @staticmethod
    def _find_name(lines: Sequence[str]) -> str | None:
        for line in lines:
            if (
                len(line) > _MIN_NAME_LENGTH
                and not SUPPLIER_STOPLIST.search(line)
                and not LABEL_LINE.match(line)
                and not line[0].isdigit()
                and _LETTER.search(line)
            ):
                return line
        return None

    @staticmethod
    def _find_address(lines: Sequence[str]) -> str | None:
        # Text without line breaks arrives as one long line; it has no address layout
        lines = [line if len(line) <= _MAX_ADDRESS_LINE_LENGTH else "" for line in lines]
        for index, line in enumerate(lines):
            street = STREET_LINE.search(line)
            if street:
                city = POSTAL_CITY.search(line[street.end():])
                if city is None and index + 1 < len(lines):
                    city = POSTAL_CITY.search(lines[index + 1])
                if city:
                    return f"{street.group(1).strip()}, {city.group(1).strip()}"

        # Fallback: a postal-code line and the line above it
        for index, line in enumerate(lines):
            city = POSTAL_CITY.search(line)
            if city and index > 0 and lines[index - 1]:
                return f"{lines[index - 1]}, {city.group(1).strip()}"
        return None


def find_service_description(lines: Sequence[str], skip: re.Pattern[str] = SUPPLIER_STOPLIST) -> str | None:
    """First descriptive body line after the letterhead.

    Looks at lines 5 to 20 for a line that is long enough, contains letters,
    does not start with a price and does not carry invoice vocabulary.
    """
    content = [line.strip() for line in lines if line and line.strip()]
    start, end = _DESCRIPTION_WINDOW
    for line in content[start:end]:
        if (
            len(line) > _MIN_DESCRIPTION_LENGTH
            and _LETTER.search(line)
            and not _PRICE_START.match(line)
            and not skip.search(line)
            and not POSTAL_CITY.search(line)
        ):
            return line
    return None
