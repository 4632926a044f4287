"""Id extraction and tracked-kind predicates for GPU processes."""

from __future__ import annotations

from collections.abc import Callable

from pidwatch._types import GPUProcess
from pidwatch.exceptions import MalformedSnapshotError

# Long-lived inference servers whose processes flicker in rocm-smi output.
DEFAULT_TRACKED_NAMES: tuple[str, ...] = ("ollama",)


def process_id(process: GPUProcess) -> int:
    """Id extractor for :class:`GPUProcess` snapshots."""
    pid = getattr(process, "pid", None)
    if not isinstance(pid, int) or isinstance(pid, bool):
        raise MalformedSnapshotError(process, f"pid must be an int, got {pid!r}")
    return pid


def name_matches(
    *patterns: str, case_sensitive: bool = False
) -> Callable[[GPUProcess], bool]:
    """Build a predicate that is true when a process name contains any pattern.

    Usage::

        reconciler = EntityReconciler(process_id, is_tracked_kind=name_matches("ollama"))
    """
    needles = patterns if case_sensitive else tuple(p.lower() for p in patterns)

    def _predicate(process: GPUProcess) -> bool:
        name = process.name if case_sensitive else process.name.lower()
        return any(needle in name for needle in needles)

    return _predicate
