"""AMD process source: parses ``rocm-smi --showpids --json`` output."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any

from pidwatch._types import GPUProcess
from pidwatch.exceptions import ProcessSourceError

logger = logging.getLogger("pidwatch.rocm")


def _parse_uint(text: str) -> int | None:
    if not text.isascii() or not text.isdigit():
        return None
    return int(text)


def parse_pid_entry(key: str, value: str) -> GPUProcess | None:
    """Parse one ``"PID144763": "ollama, 1, 6352367616, 0, unknown"`` pair.

    Fields after the key are name, GPU index, VRAM bytes, engine usage and
    state. The first three are required; engine usage falls back to 0 and
    state to ``"unknown"``. Returns None when a required field is missing or
    not numeric.
    """
    pid = _parse_uint(key[3:] if key.startswith("PID") else key)
    if pid is None:
        return None

    parts = [p.strip() for p in value.split(",")]
    if len(parts) < 3:
        return None
    gpu_index = _parse_uint(parts[1])
    vram_bytes = _parse_uint(parts[2])
    if gpu_index is None or vram_bytes is None:
        return None

    engine_usage = 0
    if len(parts) > 3:
        engine_usage = _parse_uint(parts[3]) or 0
    state = parts[4] if len(parts) > 4 else "unknown"

    return GPUProcess(
        pid=pid,
        name=parts[0],
        gpu_index=gpu_index,
        vram_bytes=vram_bytes,
        engine_usage=engine_usage,
        state=state,
    )


def parse_rocm_pid_json(root: Any) -> list[GPUProcess]:
    """Extract processes from the decoded JSON document.

    Only string values under the ``"system"`` object are considered;
    anything unparseable is skipped.
    """
    if not isinstance(root, dict):
        return []
    system = root.get("system")
    if not isinstance(system, dict):
        return []

    processes: list[GPUProcess] = []
    for key, value in system.items():
        if not isinstance(value, str):
            continue
        process = parse_pid_entry(key, value)
        if process is None:
            logger.debug("Skipping unparseable rocm-smi entry %r: %r", key, value)
            continue
        processes.append(process)
    return processes


def parse_rocm_pid_output(text: str) -> list[GPUProcess]:
    """Parse raw stdout of ``rocm-smi --showpids --json``.

    When idle, some rocm-smi versions print a plain-text notice instead of
    JSON; output without a JSON object means no processes.
    """
    start = text.find("{")
    if start < 0:
        return []
    try:
        root = json.loads(text[start:])
    except json.JSONDecodeError as exc:
        raise ProcessSourceError(f"rocm-smi returned invalid JSON: {exc}") from exc
    return parse_rocm_pid_json(root)


class RocmSmiSource:
    """Lists GPU processes by running rocm-smi once per collect."""

    vendor = "AMD"

    def __init__(self, *, executable: str = "rocm-smi", timeout_s: float = 5.0) -> None:
        self._executable = executable
        self._timeout_s = timeout_s

    @property
    def command(self) -> list[str]:
        return [self._executable, "--showpids", "--json"]

    def collect(self) -> list[GPUProcess]:
        try:
            result = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                timeout=self._timeout_s,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ProcessSourceError(f"{self._executable} not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise ProcessSourceError(
                f"{self._executable} timed out after {self._timeout_s}s"
            ) from exc
        except OSError as exc:
            raise ProcessSourceError(f"Failed to run {self._executable}: {exc}") from exc

        if result.returncode != 0:
            raise ProcessSourceError(
                f"{self._executable} exited with {result.returncode}: {result.stderr.strip()}"
            )
        return parse_rocm_pid_output(result.stdout)

    def shutdown(self) -> None:
        pass


def list_rocm_pids(*, executable: str = "rocm-smi", timeout_s: float = 5.0) -> list[GPUProcess]:
    """One-shot query; returns an empty list on any failure."""
    try:
        return RocmSmiSource(executable=executable, timeout_s=timeout_s).collect()
    except ProcessSourceError:
        logger.debug("rocm-smi query failed", exc_info=True)
        return []
