"""Ordered pattern libraries for invoice field extraction.

Every logical field owns an ordered list of strategies. The list is a
contract, validated when it is built:
- strategies are ordered from most to least specific (non-increasing
  specificity), so a labeled match always wins over a generic one
- generic catch-all strategies come after every labeled strategy

The extractor tries the strategies in order and returns the first strategy
that produces a value, not the first textual occurrence in the document.
Fields are independent of each other.
"""

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from invoice_engine.extraction.schema import TaxBucket
from invoice_engine.parsing.amounts import MAX_VAT_RATE, AmountParser, quantize, rate_key

logger = logging.getLogger(__name__)

# Building blocks
AMOUNT = r"(?<![\d.,])(\d{1,3}(?:[.,']\d{3})*[.,]\d{2}|\d+[.,]\d{2})(?![\d.,]?\d)"
DATE = r"(?<!\d)(\d{1,2}[./-]\d{1,2}[./-](?:\d{4}|\d{2})(?!\d)|\d{4}-\d{2}-\d{2}(?!\d))"
IDENTIFIER = r"((?=[A-Za-z0-9/._-]*\d)[A-Za-z0-9](?:[A-Za-z0-9/._-]*[A-Za-z0-9])?)"
RATE_VALUE = r"\d{1,2}(?:[,.]\d{1,2})?"
RATE = r"(" + RATE_VALUE + r")"
TAX_NAMES = r"Mehrwertsteuer|Umsatzsteuer|MwSt|USt|VAT"
TAX_WORDS = r"(?:" + TAX_NAMES + r")"
# An amount right after "auf", "von", "netto" or "Basis" is the taxable base
NOT_A_BASE = r"(?<!auf )(?<!von )(?<!netto )(?<!Basis )(?<!auf € )(?<!von € )(?<!auf EUR )(?<!von EUR )"

Chooser = Callable[[list[re.Match[str]]], re.Match[str] | None]


@dataclass(frozen=True)
class PatternStrategy:
    """A single pure extraction strategy.

    Attributes:
        name: Identifier used in logs and confidence evidence
        pattern: Compiled regex; the first non-empty group is the value
        specificity: Trust in a match of this strategy (0-1)
        generic: True for catch-all strategies without a field label
        choose: Optional selector over all matches (default: first match)
    """

    name: str
    pattern: re.Pattern[str]
    specificity: float
    generic: bool = False
    choose: Chooser | None = None

    def apply(self, text: str) -> re.Match[str] | None:
        if self.choose is None:
            return self.pattern.search(text)
        matches = list(self.pattern.finditer(text))
        return self.choose(matches) if matches else None


@dataclass(frozen=True)
class FieldPatterns:
    """Ordered strategies for one logical field."""

    field: str
    strategies: tuple[PatternStrategy, ...]
    clean: Callable[[str], str] | None = None
    validate: Callable[[str], bool] | None = None

    def __post_init__(self) -> None:
        if not self.strategies:
            raise ValueError(f"Field '{self.field}' has no strategies")
        seen_generic = False
        previous = 1.0
        for strategy in self.strategies:
            if strategy.specificity > previous:
                raise ValueError(
                    f"Field '{self.field}': strategy '{strategy.name}' is more specific "
                    f"than its predecessor"
                )
            if seen_generic and not strategy.generic:
                raise ValueError(
                    f"Field '{self.field}': labeled strategy '{strategy.name}' "
                    f"follows a generic one"
                )
            seen_generic = seen_generic or strategy.generic
            previous = strategy.specificity


@dataclass(frozen=True)
class FieldMatch:
    """Successful match of a field strategy."""

    field: str
    value: str
    strategy: str
    specificity: float
    generic: bool
    raw: str
    groups: tuple[str, ...] = field(default_factory=tuple)


def _strategy(
    name: str,
    pattern: str,
    specificity: float,
    *,
    flags: int = re.IGNORECASE,
    generic: bool = False,
    choose: Chooser | None = None,
) -> PatternStrategy:
    return PatternStrategy(
        name=name,
        pattern=re.compile(pattern, flags),
        specificity=specificity,
        generic=generic,
        choose=choose,
    )


def _largest_amount(matches: list[re.Match[str]]) -> re.Match[str] | None:
    parser = AmountParser()
    best: re.Match[str] | None = None
    best_value = Decimal("-1")
    for match in matches:
        text = next((group for group in match.groups() if group), None)
        value = parser.parse(text)
        if value is not None and value > best_value:
            best, best_value = match, value
    return best


def iban_is_valid(iban: str) -> bool:
    """ISO 13616 mod-97 checksum."""
    compact = re.sub(r"\s", "", iban).upper()
    if not re.fullmatch(r"[A-Z]{2}\d{2}[A-Z0-9]{11,30}", compact):
        return False
    rearranged = compact[4:] + compact[:4]
    digits = "".join(str(int(char, 36)) for char in rearranged)
    return int(digits) % 97 == 1


def _compact_upper(value: str) -> str:
    return re.sub(r"\s", "", value).upper()


def _currency_code(value: str) -> str:
    symbols = {"€": "EUR", "EURO": "EUR", "$": "USD", "DOLLAR": "USD", "£": "GBP",
               "FRANKEN": "CHF"}
    return symbols.get(value.upper(), value.upper())


def _trim(value: str) -> str:
    return value.strip(" .,;:-")


def _phone(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip(" -/")


FIELD_PATTERNS: tuple[FieldPatterns, ...] = (
    FieldPatterns(
        "invoice_number",
        (
            _strategy(
                "rechnungsnummer",
                r"Rechnungs[\s-]*(?:Nr\.?|Nummer)\s*[:.]?\s*" + IDENTIFIER,
                0.95,
            ),
            _strategy(
                "rechnung",
                r"\bRechnung\s*(?:Nr\.?|Nummer|No\.?)?\s*[:.]\s*" + IDENTIFIER,
                0.9,
            ),
            _strategy(
                "invoice",
                r"\bInvoice\s*(?:No\.?|Number|#)?\s*[:.#]?\s*" + IDENTIFIER,
                0.9,
            ),
            _strategy(
                "re-nr",
                r"\b(?:Rg|Re)[\s.-]*(?:Nr\.?|Nummer)\s*[:.]?\s*" + IDENTIFIER,
                0.85,
            ),
            _strategy(
                "beleg",
                r"\bBeleg[\s-]*(?:Nr\.?|Nummer)?\s*[:.]\s*" + IDENTIFIER,
                0.8,
            ),
            _strategy(
                "nummer",
                r"(?<![-\w])(?:Nr\.?|Nummer|No\.)\s*[:.]\s*"
                r"((?=[A-Za-z0-9/._-]*\d)[A-Za-z0-9][A-Za-z0-9/._-]{1,}[A-Za-z0-9])",
                0.6,
            ),
            _strategy(
                "id-token",
                r"\b([A-Z]{1,4}-\d{2,}(?:[-/]\d+)*)\b",
                0.4,
                flags=0,
                generic=True,
            ),
        ),
    ),
    FieldPatterns(
        "invoice_date",
        (
            _strategy(
                "rechnungsdatum",
                r"(?:Rechnungsdatum|Datum\s+der\s+Rechnung)\s*[:.]?\s*" + DATE,
                0.95,
            ),
            _strategy(
                "ausstellungsdatum",
                r"(?:Ausstellungsdatum|Erstellungsdatum|Invoice\s+Date)\s*[:.]?\s*" + DATE,
                0.9,
            ),
            _strategy("datum", r"(?<![-\w])(?:Datum|Date)\s*[:.]?\s*" + DATE, 0.8),
            _strategy("any-date", DATE, 0.5, generic=True),
        ),
    ),
    FieldPatterns(
        "service_date",
        (
            _strategy(
                "leistungsdatum",
                r"(?:Leistungsdatum|Lieferdatum|Liefertermin|Delivery\s+Date)\s*[:.]?\s*" + DATE,
                0.9,
            ),
            _strategy(
                "geliefert-am",
                r"(?:Leistung\s+vom|geliefert\s+am|ausgeführt\s+am)\s*[:.]?\s*" + DATE,
                0.85,
            ),
        ),
    ),
    FieldPatterns(
        "service_period",
        (
            _strategy(
                "leistungszeitraum",
                r"(?:Leistungszeitraum|Abrechnungszeitraum|Zeitraum)\s*[:.]?\s*(?:vom\s*)?"
                + DATE
                + r"\s*(?:bis|-|–)\s*(?:zum\s*)?"
                + DATE,
                0.9,
            ),
        ),
    ),
    FieldPatterns(
        "supplier_vat_id",
        (
            _strategy(
                "ust-idnr",
                r"(?i:USt[.\s-]*Id[.\s-]*Nr\.?|USt[.\s-]*Id|Umsatzsteuer[\s-]*Id\w*(?:[\s-]*Nr\.?)?"
                r"|VAT[\s-]*(?:ID|Reg\.?\s*No\.?)|UID(?:-Nr\.?)?)\s*[:.]?\s*"
                r"([A-Z]{2} ?[0-9A-Z](?: ?[0-9A-Z]){7,11})\b",
                0.95,
                flags=0,
            ),
            _strategy("de-vat-id", r"\b(DE ?\d{3} ?\d{3} ?\d{3})\b", 0.6, flags=0, generic=True),
        ),
        clean=_compact_upper,
    ),
    FieldPatterns(
        "supplier_tax_number",
        (
            _strategy(
                "steuernummer",
                r"(?:Steuer[\s-]*Nr\.?|Steuernummer|St\.?[\s-]*Nr\.?)\s*[:.]?\s*"
                r"(\d{2,3} ?/ ?\d{3,4} ?/ ?\d{4,5})",
                0.95,
            ),
            _strategy(
                "tax-number-shape",
                r"(?<![\d/])(\d{2,3}/\d{3,4}/\d{4,5})(?![\d/])",
                0.5,
                generic=True,
            ),
        ),
        clean=lambda value: re.sub(r"\s", "", value),
    ),
    FieldPatterns(
        "supplier_iban",
        (
            _strategy(
                "iban-label",
                r"(?i:IBAN)\s*[:.]?\s*([A-Z]{2}\d{2}(?: ?[A-Z0-9]{4}){2,7}(?: ?[A-Z0-9]{1,4})?)\b",
                0.95,
                flags=0,
            ),
            _strategy(
                "iban-shape",
                r"\b([A-Z]{2}\d{2}(?: ?[A-Z0-9]{4}){2,7}(?: ?[A-Z0-9]{1,4})?)\b",
                0.6,
                flags=0,
                generic=True,
            ),
        ),
        clean=_compact_upper,
        validate=iban_is_valid,
    ),
    FieldPatterns(
        "supplier_bic",
        (
            _strategy(
                "bic",
                r"(?i:BIC|SWIFT(?:[\s-]*Code)?)\s*[:.]?\s*([A-Z]{4}[A-Z]{2}[A-Z0-9]{2}(?:[A-Z0-9]{3})?)\b",
                0.9,
                flags=0,
            ),
        ),
    ),
    FieldPatterns(
        "total_amount",
        (
            _strategy(
                "gesamtbetrag",
                r"(?<![-\w])(?:Gesamtbetrag|Rechnungsbetrag|Endbetrag|Endsumme|Zahlbetrag"
                r"|zu\s+zahlen(?:der\s+Betrag)?|Bruttobetrag|Bruttosumme|Gesamtsumme"
                r"|Amount\s+due|Grand\s+total)\b(?!\s*netto)[^\n]{0,40}?" + AMOUNT,
                0.95,
            ),
            _strategy(
                "summe",
                r"(?<![-\w])(?:Gesamt|Summe|Total|Brutto|Betrag)\b"
                r"(?!\s*(?:netto|net\b|mwst|ust|steuer|vat))[^\n]{0,30}?" + AMOUNT,
                0.85,
            ),
            _strategy(
                "amount-with-currency",
                AMOUNT + r"\s*(?:€|EUR\b)|(?:€|EUR\b)\s*" + AMOUNT,
                0.6,
                generic=True,
                choose=_largest_amount,
            ),
        ),
    ),
    FieldPatterns(
        "net_amount",
        (
            _strategy(
                "nettobetrag",
                r"(?<![-\w])(?:Nettobetrag|Nettosumme|Summe\s+netto|Gesamt\s+netto|Netto(?:\s*gesamt)?"
                r"|Zwischensumme|Subtotal|Net\s+amount)\b[^\n]{0,30}?" + AMOUNT,
                0.9,
            ),
        ),
    ),
    FieldPatterns(
        "tax_amount",
        (
            _strategy(
                "steuerbetrag",
                r"(?<![-\w])(?:" + TAX_NAMES + r"|Steuerbetrag|Steuer)\b[^\n]{0,30}?" + NOT_A_BASE + AMOUNT,
                0.9,
            ),
        ),
    ),
    FieldPatterns(
        "tax_rate",
        (
            _strategy("label-rate", r"(?<![-\w])" + TAX_WORDS + r"[.:\s]*" + RATE + r"\s*%", 0.9),
            _strategy("rate-label", RATE + r"\s*%\s*(?:" + TAX_NAMES + r"|Steuer)", 0.85),
        ),
    ),
    FieldPatterns(
        "due_date",
        (
            _strategy(
                "faellig-am",
                r"(?:fällig\s+am|zahlbar\s+bis(?:\s+zum)?|Zahlungsziel|Zahlung\s+bis|Due\s+date)"
                r"\s*[:.]?\s*" + DATE,
                0.95,
            ),
            _strategy("faelligkeit", r"(?:Fälligkeit(?:sdatum)?|fällig)\s*[:.]?\s*" + DATE, 0.9),
        ),
    ),
    FieldPatterns(
        "due_days",
        (
            _strategy(
                "zahlbar-innerhalb",
                r"(?:zahlbar|Zahlung|Zahlungsziel|fällig)[^\n]{0,20}?(?:innerhalb|binnen)\s*(?:von\s*)?"
                r"(\d{1,3}\s*(?:Tagen|Tage|Tag))\b",
                0.85,
            ),
            _strategy(
                "zahlungsziel-tage",
                r"(?:Zahlungsziel|zahlbar|Payment\s+terms)\s*[:.]?\s*(\d{1,3}\s*(?:Tagen|Tage|Tag))\b",
                0.75,
            ),
        ),
    ),
    FieldPatterns(
        "payment_reference",
        (
            _strategy(
                "verwendungszweck",
                r"(?i:Verwendungszweck|Zahlungsreferenz|Referenz|Bei\s+Zahlung\s+bitte\s+angeben)"
                r"\s*[:.]?\s*([A-Z0-9][A-Z0-9/-]*\b(?: [A-Z0-9][A-Z0-9/-]*\b)*)",
                0.9,
                flags=0,
            ),
        ),
        clean=_trim,
    ),
    FieldPatterns(
        "order_number",
        (
            _strategy(
                "bestellnummer",
                r"(?:Bestell[\s-]*(?:Nr\.?|nummer)|Auftrags[\s-]*(?:Nr\.?|nummer)|Auftrag[\s-]*Nr\.?"
                r"|Ihre\s+Bestellung|Order\s*(?:No\.?|Number)|PO[\s-]*(?:No\.?|Number))\s*[:.]?\s*"
                + IDENTIFIER,
                0.9,
            ),
            _strategy("auftrag", r"\b(?:Bestellung|Auftrag)\s*[:.]\s*" + IDENTIFIER, 0.7),
        ),
    ),
    FieldPatterns(
        "delivery_note_number",
        (
            _strategy(
                "lieferschein",
                r"(?:Liefer[\s-]*schein[\s-]*(?:Nr\.?|nummer)?|LS[\s-]*Nr\.?)\s*[:.]?\s*" + IDENTIFIER,
                0.9,
            ),
        ),
    ),
    FieldPatterns(
        "project_reference",
        (
            _strategy(
                "projektnummer",
                r"(?:Projekt[\s-]*(?:Nr\.?|nummer)|Project\s*(?:No\.?|Number))\s*[:.]?\s*" + IDENTIFIER,
                0.9,
            ),
            _strategy(
                "bauvorhaben",
                r"(?<![-\w])(?:Projekt|Project|Bauvorhaben|Baustelle|BV)\s*:\s*([^\n]{3,60})",
                0.7,
            ),
        ),
        clean=_trim,
    ),
    FieldPatterns(
        "contact_person",
        (
            _strategy(
                "ansprechpartner",
                r"(?i:Ihr\s+Ansprechpartner(?:in)?|Ansprechpartner(?:in)?|Kontaktperson|Kontakt"
                r"|Bearbeiter(?:in)?|Contact)\s*[:.]?\s*"
                r"((?:(?:Herr|Frau|Hr\.|Fr\.)\s+)?[A-ZÄÖÜ][a-zäöüß]+(?:[ -][A-ZÄÖÜ][a-zäöüß]+){0,3})",
                0.85,
                flags=0,
            ),
        ),
    ),
    FieldPatterns(
        "supplier_email",
        (
            _strategy(
                "email-label",
                r"(?:E-?Mail|Mail)\s*[:.]?\s*([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})",
                0.9,
            ),
            _strategy(
                "email-shape",
                r"([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})",
                0.75,
                generic=True,
            ),
        ),
        clean=lambda value: value.rstrip("."),
    ),
    FieldPatterns(
        "supplier_phone",
        (
            _strategy(
                "telefon",
                r"(?<![\w])(?:Tel(?:efon)?\.?|Phone|Fon)\s*[:.]?\s*(\+?\d[\d /()-]{5,}\d)",
                0.9,
            ),
        ),
        clean=_phone,
    ),
    FieldPatterns(
        "customer_number",
        (
            _strategy(
                "kundennummer",
                r"(?:Kunden[\s-]*(?:Nr\.?|nummer)|Kd\.?[\s-]*Nr\.?|KdNr\.?|Customer\s*(?:No\.?|Number))"
                r"\s*[:.]?\s*" + IDENTIFIER,
                0.9,
            ),
        ),
    ),
    FieldPatterns(
        "payment_terms",
        (
            _strategy(
                "zahlungsbedingungen",
                r"(?:Zahlungsbedingungen|Zahlungsziel|Payment\s+terms)\s*[:.]?\s*([^\n]{5,80})",
                0.9,
            ),
            _strategy("zahlbar", r"\b(zahlbar\s+[^\n]{5,80})", 0.7),
        ),
        clean=_trim,
    ),
    FieldPatterns(
        "discount_terms",
        (
            _strategy("skonto-rate", r"(" + RATE_VALUE + r"\s*%\s*Skonto[^\n]{0,60})", 0.9),
            _strategy("skonto", r"\bSkonto\s*[:.]?\s*([^\n]{3,60})", 0.8),
        ),
        clean=_trim,
    ),
    FieldPatterns(
        "reverse_charge",
        (
            _strategy(
                "reverse-charge",
                r"(reverse[\s-]*charge|Steuerschuldnerschaft\s+des\s+Leistungsempfängers"
                r"|§\s*13b\s*UStG)",
                1.0,
            ),
        ),
    ),
    FieldPatterns(
        "intra_community_supply",
        (
            _strategy(
                "innergemeinschaftlich",
                r"(innergemeinschaftliche\s+Lieferung|§\s*4\s*Nr\.?\s*1\s*b\s*UStG"
                r"|intra[\s-]*community\s+supply)",
                1.0,
            ),
        ),
    ),
    FieldPatterns(
        "currency",
        (
            _strategy("iso-code", r"\b(EUR|CHF|USD|GBP)\b", 0.9, flags=0),
            _strategy("symbol", r"(€|\$|£)", 0.8, flags=0),
            _strategy("word", r"\b(Euro|Dollar|Franken)\b", 0.6, generic=True),
        ),
        clean=_currency_code,
    ),
)

# Tax breakdown lines
_TAX_KEYWORD = re.compile(r"(?<![-\w])(?:" + TAX_NAMES + r"|Steuer|Tax)\b", re.IGNORECASE)
_RATE_PERCENT = re.compile(r"(?<![\d.,])" + RATE + r"\s*%")
_BREAKDOWN_AMOUNT = re.compile(AMOUNT + r"(?!\s*%)")
_NOT_A_BREAKDOWN = re.compile(
    r"\b(?:inkl|incl|Gesamtbetrag|Gesamtsumme|Brutto|zu\s+zahlen|Zahlbetrag|Endsumme"
    r"|Rechnungsbetrag|Skonto|Rabatt)",
    re.IGNORECASE,
)
_NET_CONTEXT = re.compile(r"\b(?:netto|net|auf|von|Basis|Bemessungsgrundlage)\b", re.IGNORECASE)


class PatternExtractor:
    """Evaluates the ordered field strategies against normalized text."""

    def __init__(self, field_patterns: Iterable[FieldPatterns] = FIELD_PATTERNS) -> None:
        self._fields = {patterns.field: patterns for patterns in field_patterns}
        self._amounts = AmountParser()

    @property
    def fields(self) -> list[str]:
        """Names of all extractable fields."""
        return list(self._fields.keys())

    def patterns_for(self, field_name: str) -> FieldPatterns:
        """Get the ordered strategies of a field.

        Raises:
            ValueError: If the field is unknown
        """
        if field_name not in self._fields:
            available = ", ".join(self._fields.keys())
            raise ValueError(f"Unknown field: '{field_name}'. Available fields: {available}")
        return self._fields[field_name]

    def extract_field(self, field_name: str, text: str) -> str | None:
        """Extract the value of a single field.

        Args:
            field_name: Logical field name (see ``fields``)
            text: Normalized invoice text

        Returns:
            Value of the first matching strategy's first group, or None
        """
        match = self.match_field(field_name, text)
        return match.value if match else None

    def match_field(self, field_name: str, text: str) -> FieldMatch | None:
        """Extract a field together with the strategy that matched it."""
        patterns = self.patterns_for(field_name)
        if not text:
            return None

        for strategy in patterns.strategies:
            match = strategy.apply(text)
            if match is None:
                continue
            groups = tuple(group.strip() for group in match.groups() if group)
            if not groups:
                continue
            value = patterns.clean(groups[0]) if patterns.clean else groups[0]
            if not value:
                continue
            if patterns.validate and not patterns.validate(value):
                logger.debug(f"{field_name}: '{value}' from '{strategy.name}' failed validation")
                continue
            logger.debug(f"{field_name}: '{value}' via '{strategy.name}'")
            return FieldMatch(
                field=field_name,
                value=value,
                strategy=strategy.name,
                specificity=strategy.specificity,
                generic=strategy.generic,
                raw=match.group(0),
                groups=groups,
            )
        return None

    def extract_all(self, text: str, field_names: Sequence[str] | None = None) -> dict[str, FieldMatch]:
        """Extract every field independently; missing fields are omitted."""
        results: dict[str, FieldMatch] = {}
        for name in field_names or self.fields:
            match = self.match_field(name, text)
            if match is not None:
                results[name] = match
        return results

    def extract_tax_breakdown(self, text: str) -> dict[str, TaxBucket]:
        """Scan tax summary lines for rate, net and tax amounts.

        A line qualifies when it names a tax, carries a rate in percent and at
        least one amount. Rates keep the order of their first appearance; a
        later line for the same rate replaces the amounts.

        Args:
            text: Normalized invoice text

        Returns:
            Mapping of rate key to TaxBucket, empty if no breakdown is printed
        """
        breakdown: dict[str, TaxBucket] = {}
        for line in text.split("\n"):
            if not _TAX_KEYWORD.search(line) or _NOT_A_BREAKDOWN.search(line):
                continue
            rate_match = _RATE_PERCENT.search(line)
            if not rate_match:
                continue
            rate = self._amounts.parse_rate(rate_match.group(1))
            if rate is None or rate <= 0 or rate > MAX_VAT_RATE:
                continue

            amounts = [
                value
                for value in (self._amounts.parse(m.group(1)) for m in _BREAKDOWN_AMOUNT.finditer(line))
                if value is not None and value > 0
            ]
            bucket = self._bucket_from_amounts(rate, amounts, line)
            if bucket is not None:
                breakdown[rate_key(rate)] = bucket
                logger.debug(f"Tax line {rate_key(rate)}%: net={bucket.net_amount} tax={bucket.tax_amount}")
        return breakdown

    @staticmethod
    def _bucket_from_amounts(rate: Decimal, amounts: list[Decimal], line: str) -> TaxBucket | None:
        if not amounts:
            return None
        factor = rate / Decimal(100)

        if len(amounts) >= 2:
            for net in amounts:
                for tax in amounts:
                    if net is not tax and abs(quantize(net * factor) - tax) <= Decimal("0.02"):
                        return TaxBucket(net_amount=net, tax_amount=tax)
            first, second = amounts[0], amounts[1]
            return TaxBucket(net_amount=max(first, second), tax_amount=min(first, second))

        amount = amounts[0]
        if _NET_CONTEXT.search(line):
            return TaxBucket(net_amount=amount, tax_amount=quantize(amount * factor))
        return TaxBucket(net_amount=quantize(amount / factor), tax_amount=amount)
