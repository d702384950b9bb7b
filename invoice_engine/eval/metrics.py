"""Evaluation metrics for invoice extraction.

Computes precision, recall, and F1 scores for extracted invoice fields.
Based on standard information extraction evaluation methodologies.

Sentinel values (``NOT_FOUND``, empty strings, a zero total) count as
"not extracted", exactly like None.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from invoice_engine.extraction.schema import NOT_FOUND, InvoiceRecord

EVALUATED_FIELDS: tuple[str, ...] = (
    "invoice_number",
    "invoice_date",
    "due_date",
    "supplier_name",
    "supplier_address",
    "supplier_vat_id",
    "supplier_iban",
    "net_amount",
    "tax_amount",
    "total_amount",
    "currency",
)


@dataclass
class FieldMetrics:
    """Metrics for a single field."""

    precision: float
    recall: float
    f1: float
    support: int  # Number of samples


@dataclass
class EvaluationReport:
    """Complete evaluation report."""

    field_metrics: dict[str, FieldMetrics]
    macro_f1: float
    total_samples: int


def extracted_value(value: Any) -> Any:
    """Map sentinels to None so they count as missing."""
    if value is None or value == NOT_FOUND:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, Decimal) and value == 0:
        return None
    return value


def calculate_field_match(expected: Any, predicted: Any) -> bool:
    """Check if extracted field matches expected value.

    Args:
        expected: Ground truth value
        predicted: Extracted value

    Returns:
        True if values match (with tolerance for numeric fields)
    """
    expected = extracted_value(expected)
    predicted = extracted_value(predicted)

    if expected is None and predicted is None:
        return True
    if expected is None or predicted is None:
        return False

    # Numeric comparison (cent tolerance)
    if isinstance(expected, int | float | Decimal) and isinstance(predicted, int | float | Decimal):
        return abs(Decimal(str(expected)) - Decimal(str(predicted))) < Decimal("0.01")

    if isinstance(expected, date):
        expected = expected.isoformat()
    if isinstance(predicted, date):
        predicted = predicted.isoformat()

    # String comparison (case-insensitive, stripped, normalized whitespace)
    if isinstance(expected, str) and isinstance(predicted, str):

        def normalize_string(s: str) -> str:
            s = s.strip().lower()
            s = s.replace("\n", ", ")  # Newlines to commas (common in addresses)
            return " ".join(s.split())

        return normalize_string(expected) == normalize_string(predicted)

    return bool(expected == predicted)


def evaluate_extraction(
    expected: list[InvoiceRecord],
    predicted: list[InvoiceRecord],
    fields: tuple[str, ...] = EVALUATED_FIELDS,
) -> EvaluationReport:
    """Evaluate extraction accuracy against ground truth.

    Args:
        expected: Ground truth records
        predicted: Extracted records
        fields: Record fields to evaluate

    Returns:
        Evaluation report with per-field and overall metrics

    Raises:
        ValueError: If the lists differ in length
    """
    if len(expected) != len(predicted):
        raise ValueError("Expected and predicted lists must have same length")

    field_metrics: dict[str, FieldMetrics] = {}

    for field in fields:
        true_positives = 0
        false_positives = 0
        false_negatives = 0

        for exp, pred in zip(expected, predicted, strict=True):
            exp_value = extracted_value(getattr(exp, field))
            pred_value = extracted_value(getattr(pred, field))

            if exp_value is not None and pred_value is not None:
                if calculate_field_match(exp_value, pred_value):
                    true_positives += 1
                else:
                    false_positives += 1  # Predicted wrong value
                    false_negatives += 1  # Missed correct value
            elif exp_value is not None:
                false_negatives += 1
            elif pred_value is not None:
                false_positives += 1

        precision = (
            true_positives / (true_positives + false_positives)
            if (true_positives + false_positives) > 0
            else 0.0
        )
        recall = (
            true_positives / (true_positives + false_negatives)
            if (true_positives + false_negatives) > 0
            else 0.0
        )
        f1 = 2 * (precision * recall) / (precision + recall) if (precision + recall) > 0 else 0.0

        field_metrics[field] = FieldMetrics(
            precision=precision,
            recall=recall,
            f1=f1,
            support=len(expected),
        )

    macro_f1 = sum(m.f1 for m in field_metrics.values()) / len(field_metrics) if field_metrics else 0.0

    return EvaluationReport(
        field_metrics=field_metrics,
        macro_f1=macro_f1,
        total_samples=len(expected),
    )
