"""OCR text normalization.

Repairs the artifacts that OCR engines and mail gateways leave in invoice
text before any pattern runs over it:
- HTML markup and entities (``&auml;`` -> ``ä``)
- UTF-8 read as cp1252 (``Ã¤`` -> ``ä``, ``â‚¬`` -> ``€``)
- typical OCR misreads of invoice vocabulary (``Rechnunq`` -> ``Rechnung``)
- run-together amount tokens (``Gesamtbetrag1.190,00€``)
- horizontal whitespace runs

Line breaks are preserved; supplier and position heuristics depend on them.
The transformation is idempotent.
"""

import html
import logging
import re
import unicodedata
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Correction:
    """A single substitution rule of the OCR correction table."""

    name: str
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


def _rule(name: str, pattern: str, replacement: str, flags: int = 0) -> Correction:
    return Correction(name=name, pattern=re.compile(pattern, flags), replacement=replacement)


# Invoice vocabulary misread by OCR. Extend here, not in the extractors.
OCR_CORRECTIONS: tuple[Correction, ...] = (
    _rule("invoice", r"\bl\s*nvoice", "Invoice", re.IGNORECASE),
    _rule("rechnung", r"([Rr])echnunq", r"\1echnung"),
    _rule("datum", r"([Dd])aturn\b", r"\1atum"),
    _rule("summe", r"([Ss])urnme", r"\1umme"),
    _rule("betrag", r"([Bb])etraq\b", r"\1etrag"),
    _rule("gmbh", r"\bGrnbH\b", "GmbH"),
    _rule("mwst", r"\b(MwSt|USt)\.+(?=\s|$)", r"\1"),
    # Run-together tokens
    _rule("label-amount", r"(?<=[A-Za-zÄÖÜäöüß])(?=\d+(?:\.\d{3})*,\d{2}\b)", " "),
    _rule("amount-euro", r"(?<=\d[,.]\d{2})(?=€)", " "),
    _rule("euro-amount", r"(?<=€)(?=\d)", " "),
)

# cp1252 renderings of UTF-8 sequences; longer keys first.
MOJIBAKE_TABLE: tuple[tuple[str, str], ...] = (
    ("â‚¬", "€"),
    ("â€™", "'"),
    ("â€˜", "'"),
    ("â€œ", '"'),
    ("â€ž", '"'),
    ("â€“", "–"),
    ("â€”", "—"),
    ("â€¢", "•"),
    ("â€¦", "…"),
    ("â€", '"'),
    ("Ã¤", "ä"),
    ("Ã¶", "ö"),
    ("Ã¼", "ü"),
    ("Ã„", "Ä"),
    ("Ã–", "Ö"),
    ("Ãœ", "Ü"),
    ("ÃŸ", "ß"),
    ("Ã©", "é"),
    ("Ã¨", "è"),
    ("Â§", "§"),
    ("Â°", "°"),
    ("Â­", ""),
    ("Â ", " "),
    ("Â", ""),
)

_MOJIBAKE_SIGNATURE = re.compile(r"Ã[\x80-\xbf¤¶¼„–œŸ©¨]|â‚¬|â€|Â")
_ENTITY_SIGNATURE = re.compile(r"&(?:[A-Za-z][A-Za-z0-9]{1,31}|#\d{1,7}|#[xX][0-9A-Fa-f]{1,6});")
_LINE_BREAK_TAG = re.compile(r"<\s*(?:br\s*/?|/\s*(?:p|div|tr|li|h[1-6]|table))\s*>", re.IGNORECASE)
_CELL_TAG = re.compile(r"<\s*/\s*t[dh]\s*>", re.IGNORECASE)
_ANY_TAG = re.compile(r"</?[A-Za-z][A-Za-z0-9]*(?:\s[^<>]*)?/?>")
_HORIZONTAL_SPACE = re.compile("[ \t\f\v\u00a0\u2009\u202f]+")


class TextNormalizer:
    """Cleans raw OCR text while keeping its line structure."""

    def __init__(self, corrections: tuple[Correction, ...] = OCR_CORRECTIONS) -> None:
        self.corrections = corrections

    def normalize(self, text: str | None) -> str:
        """Normalize raw OCR text.

        Args:
            text: Raw text, plain or HTML; None is treated as empty

        Returns:
            Cleaned plain text with line breaks preserved
        """
        if not isinstance(text, str) or not text:
            return ""

        cleaned = self._decode(text)
        cleaned = unicodedata.normalize("NFC", cleaned)
        cleaned = cleaned.replace("\r\n", "\n").replace("\r", "\n")
        for correction in self.corrections:
            cleaned = correction.apply(cleaned)
        cleaned = self._collapse_whitespace(cleaned)

        if cleaned != text:
            logger.debug(f"Normalized text ({len(text)} -> {len(cleaned)} characters)")
        return cleaned

    def _decode(self, text: str) -> str:
        """Strip markup, decode entities and repair mojibake until stable.

        Every step only shortens the text, so the loop terminates.
        """
        previous = None
        while text != previous:
            previous = text
            text = self._strip_markup(text)
            if _ENTITY_SIGNATURE.search(text):
                text = html.unescape(text)
            if _MOJIBAKE_SIGNATURE.search(text):
                text = self._repair_mojibake(text)
        return text

    @staticmethod
    def _strip_markup(text: str) -> str:
        if "<" not in text:
            return text
        text = _LINE_BREAK_TAG.sub("\n", text)
        text = _CELL_TAG.sub(" ", text)
        return _ANY_TAG.sub("", text)

    @staticmethod
    def _repair_mojibake(text: str) -> str:
        for broken, fixed in MOJIBAKE_TABLE:
            text = text.replace(broken, fixed)
        return text

    @staticmethod
    def _collapse_whitespace(text: str) -> str:
        lines = [_HORIZONTAL_SPACE.sub(" ", line).strip() for line in text.split("\n")]
        return "\n".join(lines).strip("\n")
