"""Date parsing for German invoice conventions.

Supported inputs:
- DD.MM.YYYY, DD-MM-YYYY, DD/MM/YYYY and their two-digit-year variants
- ISO YYYY-MM-DD (structured guesses from the vision-AI collaborator)
- relative payment terms: "14 Tage", "30 Tagen", "1 Tag"

Output is always an ISO string (YYYY-MM-DD) or None.
"""

import logging
import re
from datetime import date, timedelta
from typing import Literal

logger = logging.getLogger(__name__)

DateStyle = Literal["auto", "absolute", "relative"]

DAY_FIRST = re.compile(r"(?<!\d)(\d{1,2})[./-](\d{1,2})[./-](\d{2}|\d{4})(?!\d)")
ISO_FORMAT = re.compile(r"(?<!\d)(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)")
RELATIVE_DAYS = re.compile(r"(?<!\d)(\d{1,3})\s*(?:Tagen|Tage|Tag)\b", re.IGNORECASE)


class DateParser:
    """Converts date literals into ISO date strings."""

    def __init__(self, two_digit_year_pivot: int = 50) -> None:
        """Initialize parser.

        Args:
            two_digit_year_pivot: Two-digit years above the pivot map to 19xx,
                all others to 20xx
        """
        self.two_digit_year_pivot = two_digit_year_pivot

    def parse(
        self,
        date_string: str | None,
        style: DateStyle = "auto",
        today: date | None = None,
    ) -> str | None:
        """Parse a date literal.

        Args:
            date_string: Text containing the date or relative term
            style: "absolute" for calendar dates, "relative" for day offsets,
                "auto" to try both in that order
            today: Reference date for relative terms (defaults to date.today())

        Returns:
            ISO date string or None if nothing parseable was found
        """
        if not isinstance(date_string, str) or not date_string.strip():
            return None

        if style in ("auto", "absolute"):
            parsed = self._parse_absolute(date_string)
            if parsed is not None:
                return parsed.isoformat()
            if style == "absolute":
                return None

        relative = self._parse_relative(date_string, today or date.today())
        return relative.isoformat() if relative is not None else None

    def _parse_absolute(self, date_string: str) -> date | None:
        iso = ISO_FORMAT.search(date_string)
        if iso:
            return self._build(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

        match = DAY_FIRST.search(date_string)
        if not match:
            return None
        day, month, year_text = match.groups()
        year = int(year_text)
        if len(year_text) == 2:
            year += 1900 if year > self.two_digit_year_pivot else 2000
        return self._build(year, int(month), int(day))

    @staticmethod
    def _parse_relative(date_string: str, today: date) -> date | None:
        match = RELATIVE_DAYS.search(date_string)
        if not match:
            return None
        return today + timedelta(days=int(match.group(1)))

    @staticmethod
    def _build(year: int, month: int, day: int) -> date | None:
        try:
            return date(year, month, day)
        except ValueError:
            logger.debug(f"Impossible calendar date: {year:04d}-{month:02d}-{day:02d}")
            return None
