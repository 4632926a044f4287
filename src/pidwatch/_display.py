"""Display ordering for reconciled entities."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pidwatch._types import TrackedEntity


def sort_for_display(
    entities: Iterable[TrackedEntity[Any]],
    *,
    key: str = "vram_bytes",
    descending: bool = True,
) -> list[TrackedEntity[Any]]:
    """Order entities by an attribute of their payload.

    Entities whose payload lacks ``key`` (or holds None) go last. Ties break
    on the string form of the id so repeated renders keep the same order.
    """
    present: list[tuple[Any, TrackedEntity[Any]]] = []
    missing: list[TrackedEntity[Any]] = []
    for entity in entities:
        value = getattr(entity.attributes, key, None)
        if value is None:
            missing.append(entity)
        else:
            present.append((value, entity))

    present.sort(key=lambda pair: str(pair[1].id))
    present.sort(key=lambda pair: pair[0], reverse=descending)
    missing.sort(key=lambda e: str(e.id))
    return [entity for _, entity in present] + missing
