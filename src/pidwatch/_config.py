"""Monitor configuration."""

from __future__ import annotations

from dataclasses import dataclass

from pidwatch._kinds import DEFAULT_TRACKED_NAMES


@dataclass(frozen=True)
class MonitorConfig:
    """Immutable process-monitor configuration."""

    grace_duration_ms: int = 5000
    poll_interval_ms: int = 1000
    tracked_names: tuple[str, ...] = DEFAULT_TRACKED_NAMES
    grace_all: bool = False
    rocm_smi_path: str = "rocm-smi"
    command_timeout_s: float = 5.0
