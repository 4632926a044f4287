"""Background poller that feeds a process source into a reconciler."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from pidwatch._reconciler import EntityReconciler
from pidwatch._source import ProcessSource
from pidwatch._types import GPUProcess, TrackedEntity
from pidwatch.exceptions import ProcessSourceError

logger = logging.getLogger("pidwatch.poller")

UpdateHandler = Callable[[list[TrackedEntity[GPUProcess]]], None]


def _noop_handler(entities: list[TrackedEntity[GPUProcess]]) -> None:
    """Default handler; callers that only pull from the reconciler need nothing."""


class BackgroundPoller:
    """Daemon thread that polls a source and reconciles every result."""

    def __init__(
        self,
        source: ProcessSource,
        reconciler: EntityReconciler[GPUProcess],
        *,
        poll_interval_ms: int = 1000,
        handler: UpdateHandler = _noop_handler,
    ) -> None:
        self._source = source
        self._reconciler = reconciler
        self._interval_s = poll_interval_ms / 1000.0
        self._handler = handler
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start polling. The first poll happens immediately."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="pidwatch-poller", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    def _run(self) -> None:
        self.poll_once()
        while not self._stop_event.wait(timeout=self._interval_s):
            self.poll_once()

    def poll_once(self) -> bool:
        """Run one collect/reconcile/handle cycle.

        Returns False when the source failed and the cycle was skipped.
        """
        try:
            snapshot = self._source.collect()
        except ProcessSourceError as exc:
            logger.warning("Skipping poll: %s", exc)
            return False
        except Exception:  # noqa: BLE001
            logger.warning("Skipping poll: %s source raised", self._source.vendor, exc_info=True)
            return False

        if self._stop_event.is_set():
            return False
        entities = self._reconciler.reconcile(snapshot)
        try:
            self._handler(entities)
        except Exception:  # noqa: BLE001
            logger.warning("Update handler failed", exc_info=True)
        return True

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
