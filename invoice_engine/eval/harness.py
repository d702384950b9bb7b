"""Evaluation harness for invoice extraction.

Runs the configured extraction provider on a gold dataset and computes
metrics. The gold file is a JSON list of ``{"ocr_text": ..., "expected": {...}}``
objects whose ``expected`` keys are InvoiceRecord fields.

Usage:
    python -m invoice_engine.eval.harness [data/gold/invoices.json] [metrics.prom]

The optional second argument writes the extraction metrics of the run in
Prometheus text format, e.g. for the node exporter textfile collector.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from invoice_engine.eval.metrics import evaluate_extraction
from invoice_engine.extraction.factory import create_extraction_service
from invoice_engine.extraction.metrics import get_metrics
from invoice_engine.extraction.schema import InvoiceRecord
from invoice_engine.shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_GOLD_FILE = Path("data/gold/invoices.json")


def load_gold_dataset(gold_file: Path) -> list[tuple[str, InvoiceRecord]]:
    """Load gold dataset from JSON file.

    Args:
        gold_file: Path to gold dataset JSON

    Returns:
        List of (ocr_text, expected_record) tuples
    """
    with open(gold_file, encoding="utf-8") as f:
        data = json.load(f)

    samples = []
    for item in data:
        expected = InvoiceRecord(**item["expected"])
        samples.append((item["ocr_text"], expected))

    logger.info(f"Loaded {len(samples)} gold samples from {gold_file}")
    return samples


def run_evaluation(gold_file: Path, settings: Settings | None = None) -> dict[str, Any]:
    """Run evaluation on gold dataset.

    Args:
        gold_file: Path to gold dataset JSON file
        settings: Engine settings (defaults to environment configuration)

    Returns:
        Evaluation results dict
    """
    settings = settings or get_settings()
    extraction_service = create_extraction_service(settings)
    logger.info(
        f"Evaluating {settings.service_name} {settings.service_version} "
        f"({settings.environment}) on {gold_file}"
    )

    samples = load_gold_dataset(gold_file)

    expected_list = []
    predicted_list = []
    for ocr_text, expected in samples:
        result = extraction_service.extract_invoice_fields(ocr_text)
        if not result.success:
            logger.warning(f"Extraction failed for sample: {result.error}")
        # Failed extractions carry the all-sentinel record
        predicted_list.append(result.invoice_data)
        expected_list.append(expected)

    report = evaluate_extraction(expected_list, predicted_list)

    return {
        "provider": extraction_service.provider_name,
        "total_samples": report.total_samples,
        "macro_f1": round(report.macro_f1, 4),
        "field_metrics": {
            field: {
                "precision": round(metrics.precision, 4),
                "recall": round(metrics.recall, 4),
                "f1": round(metrics.f1, 4),
                "support": metrics.support,
            }
            for field, metrics in report.field_metrics.items()
        },
    }


def print_report(results: dict[str, Any]) -> None:
    """Print evaluation results as a table."""
    print("\n" + "=" * 60)
    print("INVOICE EXTRACTION EVALUATION RESULTS")
    print("=" * 60)
    print(f"\nProvider: {results['provider']}")
    print(f"Total Samples: {results['total_samples']}")
    print(f"Macro F1 Score: {results['macro_f1']:.1%}\n")

    print("Per-Field Metrics:")
    print("-" * 60)
    print(f"{'Field':<20} {'Precision':<12} {'Recall':<12} {'F1':<12}")
    print("-" * 60)

    for field, metrics in results["field_metrics"].items():
        print(
            f"{field:<20} {metrics['precision']:<12.1%} "
            f"{metrics['recall']:<12.1%} {metrics['f1']:<12.1%}"
        )

    print("=" * 60)


def write_metrics(metrics_file: Path) -> None:
    """Write the current extraction metrics in Prometheus text format."""
    body, _ = get_metrics()
    metrics_file.write_bytes(body)
    logger.info(f"Wrote extraction metrics to {metrics_file}")


if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    gold_file = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_GOLD_FILE
    print_report(run_evaluation(gold_file, settings))
    if len(sys.argv) > 2:
        write_metrics(Path(sys.argv[2]))
