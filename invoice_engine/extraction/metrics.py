"""Prometheus metrics for invoice extraction.

Exposes key metrics for monitoring:
- Extraction counts by provider and status
- Extraction duration histograms
- Overall confidence distribution
- Fields found per document

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Extraction metrics
extractions_total = Counter(
    "invoice_extractions_total",
    "Total invoice extractions",
    ["provider", "status"],  # success, failed
)

extraction_duration_seconds = Histogram(
    "invoice_extraction_duration_seconds",
    "Invoice extraction duration in seconds",
    ["provider"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

# Quality metrics
extraction_confidence = Histogram(
    "invoice_extraction_confidence",
    "Overall confidence of successful extractions",
    ["provider"],
    buckets=(0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
)

fields_extracted_total = Counter(
    "invoice_fields_extracted_total",
    "Fields found by extraction",
    ["field"],
)

# Batch metrics
batch_documents_total = Counter(
    "invoice_batch_documents_total",
    "Documents processed in batches",
    ["status"],  # success, failed
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
