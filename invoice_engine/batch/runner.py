"""Parallel batch extraction.

Extraction calls are independent and share no mutable state, so a batch is
simply fanned out over a thread pool. The pool is a scoped resource owned by
one BatchExtractor and released when the ``with`` block ends.

Example:
    >>> with BatchExtractor(provider, max_workers=4) as batch:
    ...     results = batch.run([("doc-1", text_1), ("doc-2", text_2)])
"""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType

from pydantic import BaseModel

from invoice_engine.extraction.base import ExtractionProvider, ExtractionResult
from invoice_engine.extraction.metrics import batch_documents_total

logger = logging.getLogger(__name__)


class BatchItemResult(BaseModel):
    """Extraction result of one document in a batch."""

    document_id: str
    result: ExtractionResult


class BatchExtractor:
    """Runs one extraction provider over many documents in parallel."""

    def __init__(self, provider: ExtractionProvider, max_workers: int = 4) -> None:
        """Initialize batch extractor.

        Args:
            provider: Provider used for every document
            max_workers: Thread pool size
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.provider = provider
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> "BatchExtractor":
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="invoice-extraction"
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def run(self, documents: Iterable[tuple[str, str]]) -> list[BatchItemResult]:
        """Extract all documents.

        Args:
            documents: (document_id, ocr_text) pairs

        Returns:
            One BatchItemResult per document, in input order. A failing
            document yields a failed result and never aborts the batch.

        Raises:
            RuntimeError: If called outside the ``with`` block
        """
        if self._executor is None:
            raise RuntimeError("BatchExtractor.run() must be called inside a 'with' block")

        pending = [
            (document_id, self._executor.submit(self.provider.extract_invoice_fields, text))
            for document_id, text in documents
        ]

        results: list[BatchItemResult] = []
        for document_id, future in pending:
            try:
                result = future.result()
            except Exception as e:
                logger.error(f"Extraction of document {document_id} failed: {e}", exc_info=True)
                result = self.provider.failed_result(f"Extraction failed: {str(e)}")

            batch_documents_total.labels(status="success" if result.success else "failed").inc()
            results.append(BatchItemResult(document_id=document_id, result=result))

        succeeded = sum(1 for item in results if item.result.success)
        logger.info(f"Batch finished: {succeeded}/{len(results)} documents extracted")
        return results


def extract_batch(
    provider: ExtractionProvider,
    documents: Iterable[tuple[str, str]],
    max_workers: int | None = None,
) -> list[BatchItemResult]:
    """Extract a batch with a pool that lives for this call only.

    The pool size defaults to the provider's ``batch_max_workers`` setting.
    """
    workers = max_workers if max_workers is not None else provider.settings.batch_max_workers
    with BatchExtractor(provider, max_workers=workers) as batch:
        return batch.run(documents)
