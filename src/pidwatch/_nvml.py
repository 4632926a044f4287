"""NVIDIA process source using pynvml."""

from __future__ import annotations

import dataclasses
import logging
import warnings
from typing import Any

from pidwatch._types import GPUProcess
from pidwatch.exceptions import ProcessSourceError

logger = logging.getLogger("pidwatch.nvml")

# pynvml is optional; the source is simply unavailable without it.
warnings.filterwarnings("ignore", category=FutureWarning, message=".*pynvml.*deprecated.*")
try:
    import pynvml

    _HAS_PYNVML = True
except ImportError:
    pynvml = None  # type: ignore[assignment,unused-ignore]
    _HAS_PYNVML = False


class NvmlSource:
    """Lists compute and graphics processes on every NVIDIA device.

    A pid is reported once. Entries for the same device (compute and
    graphics lists) keep the larger VRAM figure; usage on several devices
    is summed and attributed to the first device the pid was seen on.
    """

    vendor = "NVIDIA"

    def __init__(self) -> None:
        if not _HAS_PYNVML:
            raise RuntimeError("pynvml is not installed")
        assert pynvml is not None
        pynvml.nvmlInit()

    def collect(self) -> list[GPUProcess]:
        assert pynvml is not None
        try:
            count = pynvml.nvmlDeviceGetCount()
            per_pid: dict[int, GPUProcess] = {}
            per_device: dict[tuple[int, int], int] = {}
            for index in range(count):
                handle = pynvml.nvmlDeviceGetHandleByIndex(index)
                for info in self._running_processes(handle):
                    self._merge(per_pid, per_device, index, info)
        except pynvml.NVMLError as exc:
            raise ProcessSourceError(f"NVML query failed: {exc}") from exc
        return list(per_pid.values())

    def _running_processes(self, handle: Any) -> list[Any]:
        assert pynvml is not None
        infos: list[Any] = list(pynvml.nvmlDeviceGetComputeRunningProcesses(handle))
        try:
            infos.extend(pynvml.nvmlDeviceGetGraphicsRunningProcesses(handle))
        except pynvml.NVMLError:
            logger.debug("Graphics process list unavailable", exc_info=True)
        return infos

    def _merge(
        self,
        per_pid: dict[int, GPUProcess],
        per_device: dict[tuple[int, int], int],
        index: int,
        info: Any,
    ) -> None:
        pid = int(info.pid)
        used = int(getattr(info, "usedGpuMemory", None) or 0)
        key = (pid, index)
        previous_on_device = per_device.get(key, 0)
        per_device[key] = max(previous_on_device, used)
        delta = per_device[key] - previous_on_device

        existing = per_pid.get(pid)
        if existing is None:
            per_pid[pid] = GPUProcess(
                pid=pid,
                name=self._process_name(pid),
                gpu_index=index,
                vram_bytes=used,
            )
        elif delta:
            per_pid[pid] = dataclasses.replace(existing, vram_bytes=existing.vram_bytes + delta)

    def _process_name(self, pid: int) -> str:
        assert pynvml is not None
        try:
            name = pynvml.nvmlSystemGetProcessName(pid)
        except pynvml.NVMLError:
            return "unknown"
        if isinstance(name, bytes):
            name = name.decode(errors="replace")
        # NVML returns the executable path; keep the basename like rocm-smi.
        return name.rsplit("/", 1)[-1] or "unknown"

    def shutdown(self) -> None:
        try:
            assert pynvml is not None
            pynvml.nvmlShutdown()
        except Exception:  # noqa: BLE001
            pass
