"""ProcessMonitor: wires source, reconciler and poller together."""

from __future__ import annotations

import logging
from types import TracebackType

from pidwatch._config import MonitorConfig
from pidwatch._display import sort_for_display
from pidwatch._kinds import name_matches, process_id
from pidwatch._poller import BackgroundPoller, UpdateHandler, _noop_handler
from pidwatch._reconciler import EntityReconciler, ErrorHandler
from pidwatch._source import ProcessSource, create_process_source
from pidwatch._timers import TimerFacility
from pidwatch._types import GPUProcess, TrackedEntity

logger = logging.getLogger("pidwatch.monitor")


class ProcessMonitor:
    """Stabilized, continuously refreshed list of GPU processes.

    Usage::

        with ProcessMonitor(MonitorConfig(grace_duration_ms=5000)) as monitor:
            monitor.start()
            for entity in monitor.processes():
                print(entity.id, entity.attributes.name, entity.lifecycle_state)
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        source: ProcessSource | None = None,
        timers: TimerFacility | None = None,
        handler: UpdateHandler = _noop_handler,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self.config = config if config is not None else MonitorConfig()
        self._source = source
        self._owns_source = source is None
        if self._source is None:
            self._source = create_process_source(
                rocm_smi_path=self.config.rocm_smi_path,
                command_timeout_s=self.config.command_timeout_s,
            )

        tracked = None if self.config.grace_all else name_matches(*self.config.tracked_names)
        self.reconciler: EntityReconciler[GPUProcess] = EntityReconciler(
            process_id,
            grace_duration_ms=self.config.grace_duration_ms,
            is_tracked_kind=tracked,
            grace_all=self.config.grace_all,
            timers=timers,
            on_error=on_error,
        )
        self._poller: BackgroundPoller | None = None
        if self._source is not None:
            self._poller = BackgroundPoller(
                self._source,
                self.reconciler,
                poll_interval_ms=self.config.poll_interval_ms,
                handler=handler,
            )
        self._closed = False

    @property
    def source(self) -> ProcessSource | None:
        return self._source

    @property
    def is_running(self) -> bool:
        return self._poller is not None and self._poller.is_running

    def start(self) -> None:
        """Start background polling. Without a source this only logs."""
        if self._closed:
            raise RuntimeError("ProcessMonitor has been shut down")
        if self._poller is None:
            logger.info("No process source, monitor will stay empty")
            return
        self._poller.start()

    def poll_once(self) -> list[TrackedEntity[GPUProcess]]:
        """Poll synchronously and return the display-ordered list."""
        if self._poller is not None and not self._closed:
            self._poller.poll_once()
        return self.processes()

    def processes(self) -> list[TrackedEntity[GPUProcess]]:
        """Current stabilized list, largest VRAM consumers first."""
        return sort_for_display(self.reconciler.entities())

    def shutdown(self) -> None:
        """Stop polling, cancel pending evictions and release the source."""
        if self._closed:
            return
        self._closed = True
        if self._poller is not None:
            self._poller.stop()
            self._poller = None
        self.reconciler.dispose()
        if self._source is not None and self._owns_source:
            self._source.shutdown()

    def __enter__(self) -> ProcessMonitor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()
