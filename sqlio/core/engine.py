"""Host engine contract and an in-process implementation.

Connectors only need four primitives from the engine that runs them: turn
values into a collection, run a ``WorkerFn`` over a collection, group key/value
pairs by key, and flatten a collection of iterables. ``LocalEngine`` provides
them inside the current process, which is enough for local runs and tests.
"""

import logging
import pickle
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Optional, Protocol, Sequence, runtime_checkable

from sqlio.coders.base import Coder
from sqlio.core.exceptions import EngineError
from sqlio.core.metrics import WorkerMetrics
from sqlio.core.worker import WorkerFn

logger = logging.getLogger(__name__)


@runtime_checkable
class HostEngine(Protocol):
    """Primitives a host pipeline engine offers to connectors."""

    def create(self, values: Iterable[Any]) -> list[Any]:
        ...

    def par_do(self, elements: Iterable[Any], fn: WorkerFn) -> list[Any]:
        """Run ``fn`` over ``elements`` on one or more workers."""
        ...

    def group_by_key(
        self, pairs: Iterable[tuple[Any, Any]], value_coder: Optional[Coder] = None
    ) -> list[tuple[Any, list[Any]]]:
        ...

    def flatten(self, iterables: Iterable[Iterable[Any]]) -> list[Any]:
        ...


def run_worker(
    fn: WorkerFn,
    bundles: Iterable[Sequence[Any]],
    bundle_retries: int = 0,
) -> list[Any]:
    """Drive one worker function through its full lifecycle.

    Setup runs once, every bundle is processed between ``start_bundle()`` and
    ``finish_bundle()``, and teardown runs on every exit path.

    Args:
        fn: Worker function to run.
        bundles: Bundles of elements, in the order the worker receives them.
        bundle_retries: How many times a failed bundle is replayed on the same
            worker before its error propagates.

    Returns:
        All outputs produced by the worker.
    """
    outputs: list[Any] = []
    with fn:
        for bundle_id, bundle in enumerate(bundles, start=1):
            outputs.extend(_run_bundle(fn, list(bundle), bundle_id, bundle_retries))
    return outputs


def _run_bundle(
    fn: WorkerFn, bundle: list[Any], bundle_id: int, bundle_retries: int
) -> list[Any]:
    attempt = 0
    while True:
        attempt += 1
        try:
            outputs: list[Any] = []
            fn.start_bundle()
            for element in bundle:
                fn.metrics.record_element()
                result = fn.process(element)
                if result is not None:
                    outputs.extend(result)
            tail = fn.finish_bundle()
            if tail is not None:
                outputs.extend(tail)
            fn.metrics.record_bundle()
            return outputs
        except Exception as e:
            fn.metrics.record_error(e, {"bundle_id": bundle_id, "attempt": attempt})
            if attempt > bundle_retries:
                raise
            logger.warning(
                f"Bundle failed, retrying (attempt {attempt + 1}): {e}",
                extra={"worker": fn.name, "bundle_id": bundle_id},
            )


class LocalEngine:
    """In-process host engine.

    Splits input into bundles, deals them round-robin to ``num_workers``
    workers and runs the workers on a thread pool. Every worker gets its own
    copy of the function, shipped through pickle the way a remote worker would
    receive it.
    """

    DEFAULT_BUNDLE_SIZE = 100

    def __init__(
        self,
        bundle_size: int = DEFAULT_BUNDLE_SIZE,
        num_workers: int = 1,
        bundle_retries: int = 0,
    ):
        if bundle_size < 1:
            raise ValueError("bundle_size must be at least 1")
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        if bundle_retries < 0:
            raise ValueError("bundle_retries cannot be negative")
        self.bundle_size = bundle_size
        self.num_workers = num_workers
        self.bundle_retries = bundle_retries
        self.worker_metrics: list[WorkerMetrics] = []

    def create(self, values: Iterable[Any]) -> list[Any]:
        return list(values)

    def par_do(self, elements: Iterable[Any], fn: WorkerFn) -> list[Any]:
        elements = list(elements)
        bundles = [
            elements[i : i + self.bundle_size]
            for i in range(0, len(elements), self.bundle_size)
        ]
        if not bundles:
            return []

        assignments = [
            bundles[i :: self.num_workers]
            for i in range(min(self.num_workers, len(bundles)))
        ]
        workers = [self._transport(fn) for _ in assignments]

        logger.debug(
            f"Running {len(bundles)} bundles on {len(workers)} workers",
            extra={"worker": fn.name},
        )

        try:
            if len(workers) == 1:
                results = [run_worker(workers[0], assignments[0], self.bundle_retries)]
            else:
                with ThreadPoolExecutor(max_workers=len(workers)) as pool:
                    futures = [
                        pool.submit(run_worker, worker, assigned, self.bundle_retries)
                        for worker, assigned in zip(workers, assignments)
                    ]
                    results = [future.result() for future in futures]
        finally:
            self.worker_metrics.extend(
                worker.metrics for worker in workers if worker.metrics is not None
            )

        return [output for result in results for output in result]

    def group_by_key(
        self, pairs: Iterable[tuple[Any, Any]], value_coder: Optional[Coder] = None
    ) -> list[tuple[Any, list[Any]]]:
        """Group values by key.

        When ``value_coder`` is given, every value crosses the grouping step in
        its encoded form, as it would when shuffled between machines.
        """
        groups: dict[Any, list[Any]] = {}
        for key, value in pairs:
            if value_coder is not None:
                value = value_coder.decode_from_bytes(value_coder.encode_to_bytes(value))
            groups.setdefault(key, []).append(value)
        return list(groups.items())

    def flatten(self, iterables: Iterable[Iterable[Any]]) -> list[Any]:
        return [item for iterable in iterables for item in iterable]

    @staticmethod
    def _transport(fn: WorkerFn) -> WorkerFn:
        try:
            return pickle.loads(pickle.dumps(fn))
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise EngineError(
                f"Worker function cannot be shipped to a worker: {e}",
                context={"worker": fn.name},
            ) from e
