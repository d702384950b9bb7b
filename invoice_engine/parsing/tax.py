"""Reconciliation of total, net and tax amounts.

Invoices print their amounts inconsistently: some show a full tax summary,
some only a gross total, some only line items. TaxReconciliation derives a
consistent set of totals and a tax breakdown from whatever was found, in
this order of trust:

1. a directly matched total (never overwritten)
2. a tax breakdown printed on the invoice
3. matched net amount plus tax amount or tax rate
4. the sum of the line items
5. an unlabeled fallback total, e.g. the largest amount marked with a currency

A matched net or tax amount is only used to split a total when the tax rate
it implies is plausible (0 to 25 %); otherwise the total is split at the
matched or standard rate.

The standard rate used to split a bare total is a policy value. It defaults
to the German 19 % and misclassifies reduced-rate (7 %) invoices that print
no rate at all.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from invoice_engine.extraction.schema import PositionLineItem, TaxBucket
from invoice_engine.parsing.amounts import MAX_VAT_RATE, quantize, rate_key

logger = logging.getLogger(__name__)

TotalSource = Literal["matched", "breakdown", "net_and_tax", "positions", "fallback", "none"]

HUNDRED = Decimal(100)
ZERO = Decimal("0")


class ReconciledTotals(BaseModel):
    """Consistent amounts of one invoice.

    Attributes:
        total_amount: Gross total, 0 if nothing could be derived
        net_amount: Net total (sum over the breakdown when one exists)
        tax_amount: Tax total (sum over the breakdown when one exists)
        tax_breakdown: Rate key -> TaxBucket, in order of discovery
        total_source: Where the total came from
    """

    model_config = ConfigDict(frozen=True)

    total_amount: Decimal = ZERO
    net_amount: Decimal | None = None
    tax_amount: Decimal | None = None
    tax_breakdown: dict[str, TaxBucket] = Field(default_factory=dict)
    total_source: TotalSource = "none"

    @property
    def breakdown_gross(self) -> Decimal:
        return sum((bucket.gross_amount for bucket in self.tax_breakdown.values()), ZERO)


class TaxReconciliation:
    """Derives totals and tax breakdown from partially extracted amounts."""

    def __init__(self, standard_rate: Decimal | int = 19, tolerance: Decimal = Decimal("0.02")) -> None:
        """Initialize reconciliation.

        Args:
            standard_rate: Rate used to split a total when the invoice names none
            tolerance: Accepted rounding difference between total and breakdown
        """
        self.standard_rate = Decimal(standard_rate)
        self.tolerance = tolerance

    def reconcile(
        self,
        total_amount: Decimal | None,
        net_amount: Decimal | None,
        tax_breakdown: Mapping[str, TaxBucket] | None,
        positions: Sequence[PositionLineItem] | None,
        *,
        tax_amount: Decimal | None = None,
        tax_rate: Decimal | None = None,
        fallback_total: Decimal | None = None,
    ) -> ReconciledTotals:
        """Reconcile extracted amounts.

        Args:
            total_amount: Directly matched gross total
            net_amount: Directly matched net amount
            tax_breakdown: Breakdown found in the text
            positions: Extracted line items
            tax_amount: Directly matched tax amount
            tax_rate: Directly matched tax rate in percent
            fallback_total: Unlabeled total candidate, used when nothing else
                yields a total

        Returns:
            ReconciledTotals with the source of the total
        """
        breakdown = dict(tax_breakdown or {})
        positions = list(positions or [])
        total = total_amount if total_amount is not None and total_amount > 0 else None

        if total is not None:
            source: TotalSource = "matched"
            if not breakdown:
                breakdown = self._split_total(total, net_amount, tax_amount, tax_rate)
        elif breakdown:
            source = "breakdown"
            total = sum((bucket.gross_amount for bucket in breakdown.values()), ZERO)
        elif net_amount is not None and net_amount > 0 and (tax_amount is not None or tax_rate is not None):
            source = "net_and_tax"
            tax = tax_amount if tax_amount is not None else quantize(net_amount * tax_rate / HUNDRED)
            rate = tax_rate if tax_rate is not None else self._infer_rate(net_amount, tax)
            breakdown = {rate_key(rate): TaxBucket(net_amount=net_amount, tax_amount=tax)}
            total = net_amount + tax
        elif positions:
            source = "positions"
            total = quantize(sum((item.total_price for item in positions), ZERO))
            breakdown = self._split_positions(positions)
        elif fallback_total is not None and fallback_total > 0:
            source = "fallback"
            total = fallback_total
            breakdown = self._split_total(total, net_amount, tax_amount, tax_rate)
        else:
            logger.debug("No amounts to reconcile")
            return ReconciledTotals(net_amount=net_amount, tax_amount=tax_amount)

        result = ReconciledTotals(
            total_amount=total,
            net_amount=self._sum(breakdown, "net_amount") if breakdown else net_amount,
            tax_amount=self._sum(breakdown, "tax_amount") if breakdown else tax_amount,
            tax_breakdown=breakdown,
            total_source=source,
        )

        deviation = abs(result.breakdown_gross - total) if breakdown else ZERO
        if deviation > self.tolerance:
            logger.warning(
                f"Tax breakdown ({result.breakdown_gross}) deviates from total ({total}) by {deviation}"
            )
        logger.debug(f"Reconciled total {total} from {source} with {len(breakdown)} tax bucket(s)")
        return result

    def _split_total(
        self,
        total: Decimal,
        net_amount: Decimal | None,
        tax_amount: Decimal | None,
        tax_rate: Decimal | None,
    ) -> dict[str, TaxBucket]:
        """Single bucket for a bare total; plausible matched net or tax amounts win over the rate."""
        if net_amount is not None and ZERO < net_amount <= total:
            tax = total - net_amount
            if self._plausible(net_amount, tax):
                rate = tax_rate if tax_rate is not None else self._infer_rate(net_amount, tax)
                return {rate_key(rate): TaxBucket(net_amount=net_amount, tax_amount=tax)}
            logger.debug(f"Ignoring net amount {net_amount}: implausible rate against total {total}")

        if tax_amount is not None and ZERO <= tax_amount < total:
            net = total - tax_amount
            if self._plausible(net, tax_amount):
                rate = tax_rate if tax_rate is not None else self._infer_rate(net, tax_amount)
                return {rate_key(rate): TaxBucket(net_amount=net, tax_amount=tax_amount)}
            logger.debug(f"Ignoring tax amount {tax_amount}: implausible rate against total {total}")

        rate = tax_rate if tax_rate is not None else self.standard_rate
        net = quantize(total / (1 + rate / HUNDRED))
        return {rate_key(rate): TaxBucket(net_amount=net, tax_amount=total - net)}

    @staticmethod
    def _split_positions(positions: Sequence[PositionLineItem]) -> dict[str, TaxBucket]:
        """Buckets per item VAT rate; item totals are gross amounts."""
        gross_by_rate: dict[str, tuple[Decimal, Decimal]] = {}
        for item in positions:
            key = rate_key(item.vat_rate)
            _, gross = gross_by_rate.get(key, (item.vat_rate, ZERO))
            gross_by_rate[key] = (item.vat_rate, gross + item.total_price)

        breakdown: dict[str, TaxBucket] = {}
        for key, (rate, gross) in gross_by_rate.items():
            gross = quantize(gross)
            net = quantize(gross / (1 + rate / HUNDRED))
            breakdown[key] = TaxBucket(net_amount=net, tax_amount=gross - net)
        return breakdown

    @staticmethod
    def _plausible(net: Decimal, tax: Decimal) -> bool:
        return net > 0 and ZERO <= tax / net * HUNDRED <= MAX_VAT_RATE

    def _infer_rate(self, net: Decimal, tax: Decimal) -> Decimal:
        if net <= 0:
            return self.standard_rate
        rate = (tax / net * HUNDRED).quantize(Decimal("0.1"))
        return rate if ZERO <= rate <= HUNDRED else self.standard_rate

    @staticmethod
    def _sum(breakdown: Mapping[str, TaxBucket], attribute: str) -> Decimal:
        return sum((getattr(bucket, attribute) for bucket in breakdown.values()), ZERO)
