"""Counters collected by each worker over its lifetime."""

import time
from dataclasses import asdict, dataclass, field
from statistics import fmean
from typing import Any, Optional


@dataclass
class WorkerMetrics:
    """Counters for one worker, from setup until teardown.

    The engine counts elements, bundles and bundle failures; the read and
    write functions count rows and flushes.
    """

    worker_name: str
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    bundles_processed: int = 0
    elements_processed: int = 0
    rows_read: int = 0
    rows_written: int = 0
    batches_flushed: int = 0
    flush_times: list[float] = field(default_factory=list)
    errors: int = 0
    error_details: list[dict[str, Any]] = field(default_factory=list)

    @property
    def end_time(self) -> Optional[float]:
        return self.finished_at

    @property
    def execution_time(self) -> float:
        """Seconds between creation and ``finish()``, or until now if still running."""
        return (self.finished_at or time.time()) - self.started_at

    def record_element(self) -> None:
        self.elements_processed += 1

    def record_row_read(self) -> None:
        self.rows_read += 1

    def record_bundle(self) -> None:
        self.bundles_processed += 1

    def record_flush(self, row_count: int, flush_time: float) -> None:
        """Count one executed and committed batch of ``row_count`` statements."""
        self.batches_flushed += 1
        self.rows_written += row_count
        self.flush_times.append(flush_time)

    def record_error(self, error: Exception, context: dict[str, Any] | None = None) -> None:
        detail: dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
        if context:
            detail["context"] = context
        self.errors += 1
        self.error_details.append(detail)

    def finish(self) -> None:
        self.finished_at = time.time()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        flush_times = data.pop("flush_times")
        data.pop("error_details")
        data["execution_time"] = self.execution_time
        data["avg_flush_time"] = fmean(flush_times) if flush_times else 0.0
        return data

    def get_summary(self) -> str:
        return (
            f"{self.worker_name}: {self.elements_processed} elements in "
            f"{self.bundles_processed} bundles, read {self.rows_read} rows, "
            f"wrote {self.rows_written} rows in {self.batches_flushed} batches, "
            f"{self.errors} errors in {self.execution_time:.2f}s"
        )
