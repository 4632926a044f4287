"""Tests for ProcessMonitor wiring and lifecycle."""

from __future__ import annotations

import pytest

import pidwatch._monitor as monitor_mod
from pidwatch._config import MonitorConfig
from pidwatch._monitor import ProcessMonitor
from pidwatch._timers import ManualTimers
from pidwatch._types import GPUProcess, LifecycleState, TrackedEntity


def _proc(pid: int, name: str = "ollama", vram: int = 1024) -> GPUProcess:
    return GPUProcess(pid=pid, name=name, gpu_index=0, vram_bytes=vram)


class _QueueSource:
    vendor = "Queue"

    def __init__(self) -> None:
        self.next: list[GPUProcess] = []
        self.shutdown_called = False

    def collect(self) -> list[GPUProcess]:
        return list(self.next)

    def shutdown(self) -> None:
        self.shutdown_called = True


def _monitor(**config: object) -> tuple[ProcessMonitor, _QueueSource, ManualTimers]:
    source = _QueueSource()
    timers = ManualTimers()
    monitor = ProcessMonitor(MonitorConfig(**config), source=source, timers=timers)  # type: ignore[arg-type]
    return monitor, source, timers


class TestPolling:
    def test_processes_sorted_by_vram(self) -> None:
        monitor, source, _ = _monitor()
        source.next = [_proc(1, vram=10), _proc(2, vram=300), _proc(3, vram=20)]
        assert [e.id for e in monitor.poll_once()] == [2, 3, 1]

    def test_tracked_names_get_grace(self) -> None:
        monitor, source, timers = _monitor(grace_duration_ms=5000)
        source.next = [_proc(1, name="ollama"), _proc(2, name="python3")]
        monitor.poll_once()

        source.next = []
        out = monitor.poll_once()
        assert [(e.id, e.lifecycle_state) for e in out] == [(1, LifecycleState.STALE)]

        timers.advance(5.0)
        assert monitor.processes() == []

    def test_custom_tracked_names(self) -> None:
        monitor, source, _ = _monitor(tracked_names=("vllm",))
        source.next = [_proc(1, name="ollama"), _proc(2, name="vllm-worker")]
        monitor.poll_once()
        source.next = []
        assert [e.id for e in monitor.poll_once()] == [2]

    def test_grace_all(self) -> None:
        monitor, source, _ = _monitor(grace_all=True)
        source.next = [_proc(1, name="python3")]
        monitor.poll_once()
        source.next = []
        assert [e.lifecycle_state for e in monitor.poll_once()] == [LifecycleState.STALE]

    def test_handler_receives_updates(self) -> None:
        received: list[list[TrackedEntity[GPUProcess]]] = []
        source = _QueueSource()
        source.next = [_proc(1)]
        monitor = ProcessMonitor(source=source, timers=ManualTimers(), handler=received.append)
        monitor.poll_once()
        assert len(received) == 1


class TestLifecycle:
    def test_shutdown_disposes_reconciler(self) -> None:
        monitor, source, timers = _monitor()
        source.next = [_proc(1)]
        monitor.poll_once()
        source.next = []
        monitor.poll_once()
        assert timers.pending == 1

        monitor.shutdown()
        assert timers.pending == 0
        assert monitor.reconciler.is_disposed
        assert monitor.processes() == []

    def test_injected_source_is_not_shut_down(self) -> None:
        monitor, source, _ = _monitor()
        monitor.shutdown()
        assert source.shutdown_called is False

    def test_owned_source_is_shut_down(self, monkeypatch: pytest.MonkeyPatch) -> None:
        source = _QueueSource()
        monkeypatch.setattr(monitor_mod, "create_process_source", lambda **kwargs: source)
        monitor = ProcessMonitor(timers=ManualTimers())
        assert monitor.source is source
        monitor.shutdown()
        assert source.shutdown_called is True

    def test_shutdown_is_idempotent(self) -> None:
        monitor, _, _ = _monitor()
        monitor.shutdown()
        monitor.shutdown()

    def test_start_after_shutdown_raises(self) -> None:
        monitor, _, _ = _monitor()
        monitor.shutdown()
        with pytest.raises(RuntimeError):
            monitor.start()

    def test_start_runs_background_poller(self) -> None:
        monitor, _, _ = _monitor(poll_interval_ms=20)
        monitor.start()
        assert monitor.is_running
        monitor.shutdown()
        assert not monitor.is_running

    def test_context_manager(self) -> None:
        source = _QueueSource()
        with ProcessMonitor(source=source, timers=ManualTimers()) as monitor:
            monitor.start()
        assert monitor.reconciler.is_disposed

    def test_without_source_stays_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(monitor_mod, "create_process_source", lambda **kwargs: None)
        monitor = ProcessMonitor(timers=ManualTimers())
        monitor.start()
        assert not monitor.is_running
        assert monitor.poll_once() == []
        monitor.shutdown()

    def test_source_factory_receives_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: dict[str, object] = {}

        def factory(**kwargs: object) -> None:
            seen.update(kwargs)

        monkeypatch.setattr(monitor_mod, "create_process_source", factory)
        ProcessMonitor(MonitorConfig(rocm_smi_path="/opt/rocm/bin/rocm-smi", command_timeout_s=2.0))
        assert seen == {"rocm_smi_path": "/opt/rocm/bin/rocm-smi", "command_timeout_s": 2.0}
