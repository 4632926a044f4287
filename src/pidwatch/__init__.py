"""pidwatch: flicker-free GPU process lists for telemetry dashboards."""

from __future__ import annotations

from pidwatch._config import MonitorConfig
from pidwatch._display import sort_for_display
from pidwatch._kinds import DEFAULT_TRACKED_NAMES, name_matches, process_id
from pidwatch._monitor import ProcessMonitor
from pidwatch._nvml import NvmlSource
from pidwatch._poller import BackgroundPoller
from pidwatch._reconciler import EntityReconciler
from pidwatch._rocm import (
    RocmSmiSource,
    list_rocm_pids,
    parse_pid_entry,
    parse_rocm_pid_json,
    parse_rocm_pid_output,
)
from pidwatch._source import ProcessSource, create_process_source
from pidwatch._timers import ManualTimers, ThreadingTimers, TimerFacility
from pidwatch._types import GPUProcess, LifecycleState, TrackedEntity
from pidwatch.exceptions import (
    DuplicateIdInSnapshotError,
    MalformedSnapshotError,
    PidwatchError,
    ProcessSourceError,
    ReconcilerError,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_TRACKED_NAMES",
    "BackgroundPoller",
    "DuplicateIdInSnapshotError",
    "EntityReconciler",
    "GPUProcess",
    "LifecycleState",
    "MalformedSnapshotError",
    "ManualTimers",
    "MonitorConfig",
    "NvmlSource",
    "PidwatchError",
    "ProcessMonitor",
    "ProcessSource",
    "ProcessSourceError",
    "ReconcilerError",
    "RocmSmiSource",
    "ThreadingTimers",
    "TimerFacility",
    "TrackedEntity",
    "__version__",
    "create_process_source",
    "list_rocm_pids",
    "name_matches",
    "parse_pid_entry",
    "parse_rocm_pid_json",
    "parse_rocm_pid_output",
    "process_id",
    "sort_for_display",
]
