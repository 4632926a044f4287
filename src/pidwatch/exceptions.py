"""Exception hierarchy for pidwatch."""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any


class PidwatchError(Exception):
    """Base exception for all pidwatch errors."""


class ReconcilerError(PidwatchError):
    """A snapshot entry could not be reconciled as given."""


class MalformedSnapshotError(ReconcilerError):
    """No id could be extracted from a snapshot entity.

    The entity is dropped; the rest of the snapshot is still reconciled.
    """

    def __init__(self, entity: Any, reason: str = "") -> None:
        self.entity = entity
        self.reason = reason
        message = f"Cannot extract id from {entity!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DuplicateIdInSnapshotError(ReconcilerError):
    """An id occurred more than once in a single snapshot.

    Resolved by keeping the last occurrence in iteration order.
    """

    def __init__(self, entity_id: Hashable, occurrences: int) -> None:
        self.entity_id = entity_id
        self.occurrences = occurrences
        super().__init__(
            f"Id {entity_id!r} appeared {occurrences} times in one snapshot; last one wins"
        )


class ProcessSourceError(PidwatchError):
    """A process source could not be queried."""
