"""
Entry point for the device monitor.

Run: python main.py                      (Qt window)
     python main.py --headless -d SERIAL (console; prints one line per tick)
"""
from __future__ import annotations

import argparse
import logging
import sys
import threading

from devmon.application.container import Container
from devmon.config import ADB_PATH
from devmon.core.errors import AppError
from devmon.core.events import SessionStopped, TickCompleted
from devmon.core.observability.logging_config import setup_logging
from devmon.core.version import get_version_string
from devmon.monitoring import ALL_METRICS
from devmon.services import adb_available
from devmon.ui.view_model import detail_rows

logger = logging.getLogger("devmon.main")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Live CPU/memory/battery telemetry over ADB.")
    p.add_argument("-d", "--device", help="ADB serial to monitor (default: last used)")
    p.add_argument("-i", "--interval", type=float, help="sampling interval, seconds (1-10)")
    p.add_argument("-c", "--capacity", type=int, help="points kept per metric (10-10000)")
    p.add_argument("--headless", action="store_true", help="no window; print samples to stdout")
    p.add_argument(
        "--duration", type=float, default=0.0, help="headless run time in seconds (0 = until Ctrl+C)"
    )
    return p.parse_args(argv)


def run_headless(container: Container, device: str, duration: float) -> int:
    controller = container.session_controller
    done = threading.Event()

    def _on_tick(event: TickCompleted) -> None:
        report = event.report
        cells = []
        for metric in ALL_METRICS:
            point = report.appended.get(metric)
            cells.append(f"{metric.value}={point.value:.2f}" if point else f"{metric.value}=-")
        print(f"[{report.tick:>5}] " + "  ".join(cells), flush=True)

    def _on_stopped(event: SessionStopped) -> None:
        if event.reason != "user":
            print(f"stopped: {event.reason}", file=sys.stderr, flush=True)
        done.set()

    bus = controller.event_bus
    subs = bus.subscribe_all({TickCompleted: _on_tick, SessionStopped: _on_stopped})
    try:
        controller.start(device)
        done.wait(duration if duration > 0 else None)
    except KeyboardInterrupt:
        pass
    finally:
        bus.unsubscribe_all(subs)
        controller.stop()
    store = controller.store
    if store is not None:
        counts = ", ".join(f"{m.value}={len(pts)}" for m, pts in store.snapshot_all().items())
        print(f"collected over {controller.elapsed:.0f}s: {counts}", flush=True)
        rows = detail_rows(controller.details())
        print("details: " + "; ".join(f"{name} {value}" for name, value in rows), flush=True)
        failing = {m.value: n for m, n in controller.failure_streaks().items() if n}
        if failing:
            print(f"failing at stop: {failing}", file=sys.stderr, flush=True)
    return 0 if controller.last_stop_reason in (None, "user") else 1


def run_gui(container: Container) -> None:
    from devmon.ui import MonitorWindow, create_application, install_error_boundary, run_application

    app = create_application()
    window = MonitorWindow(container)
    window.show()
    install_error_boundary(window.notify.emit)
    run_application(app)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    setup_logging()
    logger.info("Device monitor %s", get_version_string())

    container = Container()
    controller = container.session_controller
    try:
        if args.interval is not None:
            controller.set_interval(args.interval)
        if args.capacity is not None:
            controller.resize(args.capacity)
    except AppError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 2

    if args.device:
        container.settings.last_device = args.device
    if not args.headless:
        run_gui(container)
        return 0

    device = args.device or container.settings.last_device
    if not device:
        print("error: no device given (use --device SERIAL)", file=sys.stderr)
        return 2
    if not adb_available():
        print(
            f"error: '{ADB_PATH}' not found (install platform-tools or set DEVMON_ADB)",
            file=sys.stderr,
        )
        return 2
    try:
        return run_headless(container, device, args.duration)
    except AppError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 2
    finally:
        container.persist_settings()
        container.shutdown()


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
