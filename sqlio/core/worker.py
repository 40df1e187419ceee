"""Lifecycle base class for functions run by a host engine worker.

A host engine creates one instance per worker, calls ``setup()`` once, then
``start_bundle()`` / ``process()`` / ``finish_bundle()`` for every bundle it
hands the worker, and ``teardown()`` once when the worker goes away. Using the
instance as a context manager ties ``setup()`` to entry and ``teardown()`` to
every exit path, including a ``setup()`` that fails half way.
"""

import logging
from enum import Enum
from typing import Any, Iterable, Optional

from sqlio.core.metrics import WorkerMetrics

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    """Lifecycle states of a worker function."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    CLOSED = "closed"


class WorkerFn:
    """Base class for per-worker functions.

    Subclasses override the lifecycle hooks they need. ``process()`` and
    ``finish_bundle()`` return an iterable of outputs (or None).
    """

    def __init__(self) -> None:
        self.state = WorkerState.UNINITIALIZED
        self.metrics: Optional[WorkerMetrics] = None

    @property
    def name(self) -> str:
        return type(self).__name__

    def setup(self) -> None:
        pass

    def start_bundle(self) -> None:
        pass

    def process(self, element: Any) -> Optional[Iterable[Any]]:
        raise NotImplementedError

    def finish_bundle(self) -> Optional[Iterable[Any]]:
        return None

    def teardown(self) -> None:
        pass

    def __enter__(self) -> "WorkerFn":
        self.metrics = WorkerMetrics(self.name)
        try:
            self.setup()
        except Exception:
            logger.debug(
                "Setup failed, tearing down", extra={"worker": self.name}
            )
            self._teardown_quietly()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc is None:
                self.teardown()
            else:
                self._teardown_quietly()
        finally:
            if self.metrics is not None:
                self.metrics.finish()
        return False

    def _teardown_quietly(self) -> None:
        """Run teardown without letting its failure mask another error."""
        try:
            self.teardown()
        except Exception:
            logger.warning(
                "Teardown failed while handling another error",
                extra={"worker": self.name},
                exc_info=True,
            )

    def __getstate__(self) -> dict[str, Any]:
        # Only configuration travels to a worker; live resources are rebuilt in setup().
        state = self.__dict__.copy()
        state["state"] = WorkerState.UNINITIALIZED
        state["metrics"] = None
        for key in self._transient_fields():
            state[key] = None
        return state

    def _transient_fields(self) -> tuple[str, ...]:
        return ()
