"""Entity reconciler: stabilizes a flickering, polled entity list.

Entities that drop out of a snapshot are not removed right away. Tracked
entities turn STALE and stay visible for a grace period; if they show up again
before it elapses they go back to ACTIVE without ever leaving the output.
Untracked entities are removed on their first absence.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Generic, TypeVar

from pidwatch._timers import ThreadingTimers, TimerFacility
from pidwatch._types import LifecycleState, TrackedEntity
from pidwatch.exceptions import (
    DuplicateIdInSnapshotError,
    MalformedSnapshotError,
    ReconcilerError,
)

logger = logging.getLogger("pidwatch.reconciler")

T = TypeVar("T")

IdExtractor = Callable[[T], Hashable]
KindPredicate = Callable[[T], bool]
ChangeHandler = Callable[[list[TrackedEntity[T]]], None]
ErrorHandler = Callable[[ReconcilerError], None]


@dataclass
class _Record(Generic[T]):
    """Mutable per-id bookkeeping, owned by the reconciler."""

    entity: T
    state: LifecycleState = LifecycleState.ACTIVE
    stale_since: float | None = None
    timer: Any = None
    timer_token: object | None = None

    def freeze(self, entity_id: Hashable) -> TrackedEntity[T]:
        return TrackedEntity(
            id=entity_id,
            attributes=self.entity,
            lifecycle_state=self.state,
            stale_since=self.stale_since,
        )


class EntityReconciler(Generic[T]):
    """Turns successive raw snapshots into a display-stable entity list.

    ``reconcile`` and eviction callbacks are serialized by an internal lock,
    so snapshots may be delivered from one thread while timers fire on others.

    Duplicate ids within one snapshot resolve last-one-wins. Entities whose id
    cannot be extracted are dropped. Both cases are logged and reported to
    ``on_error``; neither aborts the snapshot.
    """

    def __init__(
        self,
        id_extractor: IdExtractor[T],
        *,
        grace_duration_ms: int = 5000,
        is_tracked_kind: KindPredicate[T] | None = None,
        grace_all: bool = False,
        timers: TimerFacility | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_change: ChangeHandler[T] | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        if grace_duration_ms < 0:
            raise ValueError(f"grace_duration_ms must be >= 0, got {grace_duration_ms}")
        self._extractor = id_extractor
        self._grace_s = grace_duration_ms / 1000.0
        self._is_tracked_kind = is_tracked_kind
        self._grace_all = grace_all
        self._timers: TimerFacility = timers if timers is not None else ThreadingTimers()
        self._clock = clock
        self._on_change = on_change
        self._on_error = on_error

        self._lock = threading.RLock()
        self._known: dict[Hashable, _Record[T]] = {}
        self._disposed = False

    @property
    def grace_duration_ms(self) -> int:
        return int(self._grace_s * 1000)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def reconcile(self, snapshot: Iterable[T]) -> list[TrackedEntity[T]]:
        """Apply the newest snapshot and return every known entity.

        An empty snapshot means nothing is currently reported. The result
        holds both ACTIVE and STALE entities in no particular order.
        """
        if snapshot is None:
            raise TypeError("snapshot must be an iterable, not None")

        errors: list[ReconcilerError] = []
        with self._lock:
            if self._disposed:
                return []

            latest = self._index(snapshot, errors)

            for entity_id, entity in latest.items():
                record = self._known.get(entity_id)
                if record is None:
                    self._known[entity_id] = _Record(entity)
                    logger.debug("Entity %r appeared", entity_id)
                    continue
                if record.state is LifecycleState.STALE:
                    self._reactivate(entity_id, record)
                record.entity = entity

            absent = [eid for eid in self._known if eid not in latest]
            for entity_id in absent:
                record = self._known[entity_id]
                if record.state is LifecycleState.STALE:
                    # Already counting down; keep the original timer.
                    continue
                tracked = self._grace_s > 0 and self._is_tracked(entity_id, record.entity)
                if self._disposed:
                    # Disposed from inside the predicate.
                    return []
                if tracked:
                    self._mark_stale(entity_id, record)
                else:
                    del self._known[entity_id]
                    logger.debug("Entity %r removed", entity_id)

            if self._disposed:
                return []
            result = self._freeze_all()

        self._report(errors)
        self._notify(result)
        return result

    def entities(self) -> list[TrackedEntity[T]]:
        """Current stabilized list, without applying a new snapshot."""
        with self._lock:
            if self._disposed:
                return []
            return self._freeze_all()

    def get(self, entity_id: Hashable) -> TrackedEntity[T] | None:
        with self._lock:
            record = self._known.get(entity_id)
            return record.freeze(entity_id) if record is not None else None

    def dispose(self) -> None:
        """Cancel every pending eviction and drop all state. Idempotent."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            for entity_id, record in self._known.items():
                if record.timer is not None:
                    self._cancel_timer(entity_id, record)
            self._known.clear()
        logger.debug("Reconciler disposed")

    def __enter__(self) -> EntityReconciler[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def __len__(self) -> int:
        return len(self._known)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._known

    # Internals below assume self._lock is held unless stated otherwise.

    def _index(self, snapshot: Iterable[T], errors: list[ReconcilerError]) -> dict[Hashable, T]:
        latest: dict[Hashable, T] = {}
        occurrences: dict[Hashable, int] = {}
        for entity in snapshot:
            try:
                entity_id = self._extract_id(entity)
            except MalformedSnapshotError as exc:
                logger.warning("Dropping malformed entity: %s", exc)
                errors.append(exc)
                continue
            if entity_id in latest:
                occurrences[entity_id] = occurrences.get(entity_id, 1) + 1
            latest[entity_id] = entity

        for entity_id, count in occurrences.items():
            exc = DuplicateIdInSnapshotError(entity_id, count)
            logger.warning("%s", exc)
            errors.append(exc)
        return latest

    def _extract_id(self, entity: T) -> Hashable:
        try:
            entity_id = self._extractor(entity)
        except MalformedSnapshotError:
            raise
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise MalformedSnapshotError(entity, str(exc)) from exc
        if entity_id is None:
            raise MalformedSnapshotError(entity, "id is None")
        try:
            hash(entity_id)
        except TypeError as exc:
            raise MalformedSnapshotError(entity, f"unhashable id {entity_id!r}") from exc
        return entity_id

    def _is_tracked(self, entity_id: Hashable, entity: T) -> bool:
        if self._is_tracked_kind is None:
            return self._grace_all
        try:
            return bool(self._is_tracked_kind(entity))
        except Exception:  # noqa: BLE001
            logger.warning(
                "is_tracked_kind failed for %r; removing without grace", entity_id, exc_info=True
            )
            return False

    def _mark_stale(self, entity_id: Hashable, record: _Record[T]) -> None:
        record.state = LifecycleState.STALE
        record.stale_since = self._clock()
        if record.timer is not None:
            return
        token = object()
        try:
            record.timer = self._timers.schedule(
                self._grace_s, functools.partial(self._evict, entity_id, token)
            )
        except Exception:  # noqa: BLE001
            logger.warning(
                "Could not schedule eviction for %r; removing without grace",
                entity_id,
                exc_info=True,
            )
            del self._known[entity_id]
            return
        record.timer_token = token
        logger.debug("Entity %r stale, eviction in %.3fs", entity_id, self._grace_s)

    def _reactivate(self, entity_id: Hashable, record: _Record[T]) -> None:
        if record.timer is not None:
            self._cancel_timer(entity_id, record)
        record.state = LifecycleState.ACTIVE
        record.stale_since = None
        logger.debug("Entity %r active again", entity_id)

    def _cancel_timer(self, entity_id: Hashable, record: _Record[T]) -> None:
        try:
            self._timers.cancel(record.timer)
        except Exception:  # noqa: BLE001
            logger.warning("Failed to cancel eviction timer for %r", entity_id, exc_info=True)
        record.timer = None
        record.timer_token = None

    def _evict(self, entity_id: Hashable, token: object) -> None:
        """Timer callback. Takes the lock itself."""
        with self._lock:
            if self._disposed:
                return
            record = self._known.get(entity_id)
            if (
                record is None
                or record.timer_token is not token
                or record.state is not LifecycleState.STALE
            ):
                logger.debug("Ignoring outdated eviction for %r", entity_id)
                return
            del self._known[entity_id]
            logger.debug("Entity %r evicted after grace period", entity_id)
            result = self._freeze_all()
        self._notify(result)

    def _freeze_all(self) -> list[TrackedEntity[T]]:
        return [record.freeze(entity_id) for entity_id, record in self._known.items()]

    # Callbacks run without the lock held.

    def _notify(self, result: list[TrackedEntity[T]]) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(list(result))
        except Exception:  # noqa: BLE001
            logger.warning("on_change handler failed", exc_info=True)

    def _report(self, errors: list[ReconcilerError]) -> None:
        if self._on_error is None:
            return
        for exc in errors:
            try:
                self._on_error(exc)
            except Exception:  # noqa: BLE001
                logger.warning("on_error handler failed", exc_info=True)
