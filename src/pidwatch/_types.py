"""Core types: lifecycle enum, GPU process payload, and tracked entities."""

from __future__ import annotations

import enum
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class LifecycleState(enum.Enum):
    """Display lifecycle of a tracked entity."""

    ACTIVE = "active"
    STALE = "stale"


@dataclass(frozen=True)
class GPUProcess:
    """One process using a GPU, as reported by a single poll."""

    pid: int
    name: str
    gpu_index: int
    vram_bytes: int
    engine_usage: int = 0
    state: str = "unknown"


@dataclass(frozen=True)
class TrackedEntity(Generic[T]):
    """Immutable view of a reconciled entity handed to consumers."""

    id: Hashable
    attributes: T
    lifecycle_state: LifecycleState = LifecycleState.ACTIVE
    stale_since: float | None = None

    @property
    def is_stale(self) -> bool:
        return self.lifecycle_state is LifecycleState.STALE
