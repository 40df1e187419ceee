"""Unit tests for WorkerMetrics."""

from sqlio.core.metrics import WorkerMetrics


class TestWorkerMetrics:
    """Tests for WorkerMetrics."""

    def test_counters(self):
        metrics = WorkerMetrics("WriteFn")

        metrics.record_element()
        metrics.record_element()
        metrics.record_bundle()
        metrics.record_flush(2, 0.5)
        metrics.record_row_read()

        assert metrics.elements_processed == 2
        assert metrics.bundles_processed == 1
        assert metrics.batches_flushed == 1
        assert metrics.rows_written == 2
        assert metrics.rows_read == 1

    def test_record_error(self):
        metrics = WorkerMetrics("ReadFn")

        metrics.record_error(ValueError("bad row"), {"bundle_id": 3})

        assert metrics.errors == 1
        assert metrics.error_details == [
            {"error_type": "ValueError", "error_message": "bad row", "context": {"bundle_id": 3}}
        ]

    def test_finish(self):
        metrics = WorkerMetrics("ReadFn")

        metrics.finish()

        assert metrics.end_time is not None
        assert metrics.execution_time >= 0

    def test_to_dict(self):
        metrics = WorkerMetrics("WriteFn")
        metrics.record_flush(10, 1.0)
        metrics.record_flush(5, 3.0)

        data = metrics.to_dict()

        assert data["worker_name"] == "WriteFn"
        assert data["rows_written"] == 15
        assert data["avg_flush_time"] == 2.0

    def test_summary(self):
        metrics = WorkerMetrics("WriteFn")
        metrics.record_flush(3, 0.1)

        assert "wrote 3 rows in 1 batches" in metrics.get_summary()
