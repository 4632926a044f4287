"""Live GPU process table with stale-grace smoothing.

Polls rocm-smi (AMD) or NVML (NVIDIA) and prints the stabilized process
list. Processes matching --track stay visible, dimmed as "stale", for the
grace period after they drop out of a poll.

Requirements:
    pip install pidwatch            # AMD: rocm-smi on PATH
    pip install "pidwatch[nvidia]"  # NVIDIA

Usage:
    python examples/watch_gpu_processes.py
    python examples/watch_gpu_processes.py --grace-ms 3000 --track ollama --track vllm
"""

from __future__ import annotations

import argparse
import logging
import time

import pidwatch


def render(entities: list[pidwatch.TrackedEntity[pidwatch.GPUProcess]]) -> None:
    print(f"\n{'PID':>8}  {'NAME':24s}  {'GPU':>3}  {'VRAM MiB':>10}  STATE")
    for entity in entities:
        proc = entity.attributes
        mib = proc.vram_bytes / (1024**2)
        state = "stale" if entity.is_stale else "active"
        print(f"{proc.pid:>8}  {proc.name[:24]:24s}  {proc.gpu_index:>3}  {mib:>10.1f}  {state}")
    if not entities:
        print("  (no GPU processes)")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--grace-ms", type=int, default=5000)
    parser.add_argument("--interval-ms", type=int, default=1000)
    parser.add_argument("--track", action="append", default=None,
                        help="process-name substring that gets a grace period (repeatable)")
    parser.add_argument("--grace-all", action="store_true", help="grace period for every process")
    parser.add_argument("--rocm-smi", default="rocm-smi")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = pidwatch.MonitorConfig(
        grace_duration_ms=args.grace_ms,
        poll_interval_ms=args.interval_ms,
        tracked_names=tuple(args.track) if args.track else pidwatch.DEFAULT_TRACKED_NAMES,
        grace_all=args.grace_all,
        rocm_smi_path=args.rocm_smi,
    )

    with pidwatch.ProcessMonitor(config) as monitor:
        if monitor.source is None:
            print("No GPU process source found (install nvidia-ml-py or put rocm-smi on PATH).")
            return
        print(f"Watching {monitor.source.vendor} GPU processes, Ctrl+C to stop")
        monitor.start()
        try:
            while True:
                time.sleep(args.interval_ms / 1000.0)
                render(monitor.processes())
        except KeyboardInterrupt:
            pass


if __name__ == "__main__":
    main()
