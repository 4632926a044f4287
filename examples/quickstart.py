"""Minimal pidwatch example: reconcile hand-made snapshots.

No GPU needed. Shows an "ollama" process surviving a one-poll gap while an
untracked process disappears immediately.

Usage:
    python examples/quickstart.py
"""

from __future__ import annotations

import time

import pidwatch

reconciler = pidwatch.EntityReconciler(
    pidwatch.process_id,
    grace_duration_ms=1000,
    is_tracked_kind=pidwatch.name_matches("ollama"),
)

ollama = pidwatch.GPUProcess(pid=4242, name="ollama", gpu_index=0, vram_bytes=6 * 1024**3)
python = pidwatch.GPUProcess(pid=777, name="python3", gpu_index=0, vram_bytes=512 * 1024**2)


def show(label: str, entities: list[pidwatch.TrackedEntity[pidwatch.GPUProcess]]) -> None:
    rows = ", ".join(f"{e.attributes.name}({e.lifecycle_state.value})" for e in entities)
    print(f"{label:28s} {rows or '-'}")


show("both running:", reconciler.reconcile([ollama, python]))
show("poll gap:", reconciler.reconcile([]))
show("ollama back:", reconciler.reconcile([ollama]))
show("ollama gone:", reconciler.reconcile([]))

time.sleep(1.2)
show("after grace period:", pidwatch.sort_for_display(reconciler.entities()))

reconciler.dispose()
