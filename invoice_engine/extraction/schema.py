"""Invoice data models for structured extraction.

Fields are split into two groups:
- always present, carrying a sentinel when nothing was found
- genuinely optional, None when absent (never guessed)

Records are frozen: a manual correction downstream builds a new record via
``model_copy(update=...)`` instead of mutating the extracted one.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

NOT_FOUND = "NOT_FOUND"


class TaxBucket(BaseModel):
    """Net and tax amount for a single tax rate."""

    model_config = ConfigDict(frozen=True)

    net_amount: Decimal = Field(..., description="Net amount taxed at this rate")
    tax_amount: Decimal = Field(..., description="Tax amount for this rate")

    @property
    def gross_amount(self) -> Decimal:
        return self.net_amount + self.tax_amount


class PositionLineItem(BaseModel):
    """A single line item of the invoice position table."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(..., ge=1, description="Position number (1-based)")
    description: str = Field(..., description="Item description")
    quantity: Decimal = Field(..., gt=0, description="Quantity, always positive")
    unit: str = Field("Stk", description="Unit of measure (Stk, Std, m, kg, ...)")
    unit_price: Decimal = Field(..., description="Price per unit")
    total_price: Decimal = Field(..., description="Line total")
    vat_rate: Decimal = Field(Decimal("19"), description="Tax rate in percent")
    article_number: str | None = Field(None, description="Supplier article number")


class ConfidenceScoreSet(BaseModel):
    """Per-field and overall extraction confidence, each in [0, 1]."""

    model_config = ConfigDict(frozen=True)

    overall: float = Field(0.0, ge=0, le=1)
    invoice_number: float = Field(0.0, ge=0, le=1)
    date: float = Field(0.0, ge=0, le=1)
    amount: float = Field(0.0, ge=0, le=1)
    supplier: float = Field(0.0, ge=0, le=1)


class InvoiceRecord(BaseModel):
    """Structured invoice data extracted from a German or English invoice."""

    model_config = ConfigDict(frozen=True)

    # Always present (sentinel when not found)
    invoice_number: str = Field(NOT_FOUND, description="Unique invoice identifier")
    invoice_date: str = Field("", description="Issue date as YYYY-MM-DD, empty if absent")
    currency: str = Field("EUR", description="Currency code (ISO 4217)")
    supplier_name: str = Field(NOT_FOUND, description="Supplier company name")
    supplier_address: str = Field("", description="Supplier street and city")
    total_amount: Decimal = Field(
        Decimal("0"), ge=0, description="Gross total; zero means extraction failed"
    )
    service_description: str = Field("", description="Short description of the service")

    # Dates
    service_date: str | None = Field(None, description="Delivery/service date")
    service_period_start: str | None = Field(None, description="Service period start")
    service_period_end: str | None = Field(None, description="Service period end")
    due_date: str | None = Field(None, description="Payment due date")

    # Supplier identification and contact
    supplier_vat_id: str | None = Field(None, description="VAT identification number")
    supplier_tax_number: str | None = Field(None, description="German tax number")
    supplier_iban: str | None = Field(None, description="Supplier IBAN")
    supplier_bic: str | None = Field(None, description="Supplier BIC/SWIFT")
    supplier_email: str | None = Field(None, description="Supplier e-mail address")
    supplier_phone: str | None = Field(None, description="Supplier phone number")
    contact_person: str | None = Field(None, description="Contact person at supplier")

    # References
    payment_reference: str | None = Field(None, description="Payment reference")
    order_number: str | None = Field(None, description="Order number")
    delivery_note_number: str | None = Field(None, description="Delivery note number")
    project_reference: str | None = Field(None, description="Project reference")
    customer_number: str | None = Field(None, description="Our customer number at supplier")

    # Payment terms
    payment_terms: str | None = Field(None, description="Payment terms as printed")
    discount_terms: str | None = Field(None, description="Early-payment discount terms")

    # Tax notes
    has_reverse_charge: bool = Field(False, description="Reverse-charge notice present")
    is_intra_community_supply: bool = Field(
        False, description="Intra-community supply notice present"
    )

    # Totals
    net_amount: Decimal | None = Field(None, description="Sum of net amounts over all rates")
    tax_amount: Decimal | None = Field(None, description="Sum of tax amounts over all rates")
    tax_breakdown: dict[str, TaxBucket] = Field(
        default_factory=dict, description="Tax rate (percent) to net/tax amounts"
    )
    positions: list[PositionLineItem] = Field(
        default_factory=list, description="Line items of the position table"
    )

    @classmethod
    def empty(cls, currency: str = "EUR") -> "InvoiceRecord":
        """All-sentinel record returned when nothing could be extracted."""
        return cls(currency=currency)

    @property
    def is_empty(self) -> bool:
        return (
            self.invoice_number == NOT_FOUND
            and not self.invoice_date
            and self.supplier_name == NOT_FOUND
            and self.total_amount == 0
        )
