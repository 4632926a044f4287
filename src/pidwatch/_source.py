"""Process source protocol and backend selection."""

from __future__ import annotations

import logging
import shutil
from typing import Protocol, runtime_checkable

from pidwatch._types import GPUProcess

logger = logging.getLogger("pidwatch.source")


@runtime_checkable
class ProcessSource(Protocol):
    """Structural protocol for anything that can list GPU processes."""

    vendor: str

    def collect(self) -> list[GPUProcess]: ...

    def shutdown(self) -> None: ...


def create_process_source(
    *, rocm_smi_path: str = "rocm-smi", command_timeout_s: float = 5.0
) -> ProcessSource | None:
    """Factory: NVML if pynvml works, else rocm-smi if on PATH, else None."""
    from pidwatch import _nvml
    from pidwatch._rocm import RocmSmiSource

    if _nvml._HAS_PYNVML:
        try:
            return _nvml.NvmlSource()
        except Exception:  # noqa: BLE001
            logger.info("NVML init failed, trying rocm-smi", exc_info=True)

    if shutil.which(rocm_smi_path) is not None:
        return RocmSmiSource(executable=rocm_smi_path, timeout_s=command_timeout_s)

    logger.info("No GPU process source available (pynvml missing, %s not on PATH)", rocm_smi_path)
    return None
