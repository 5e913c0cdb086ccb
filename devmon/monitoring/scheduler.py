"""
Periodic sampler: one background thread, one tick per interval.

Each tick fetches every metric's command output through the device port (the
commands run on a small worker pool, so a slow one does not serialize the rest),
parses it and appends the values to the store. Failures stay per metric: a
metric that could not be fetched or parsed just gets no point this tick.
The same outputs feed the details snapshot (5m/15m load, memory breakdown,
battery voltage and charger state); the core count comes from one extra
``/proc/cpuinfo`` read on the first tick.

Timing rules:
- the first tick runs as soon as the scheduler starts;
- a tick that overruns its interval makes the loop skip the missed boundaries
  instead of firing them back-to-back;
- ``set_interval`` re-plans the pending deadline from the last tick boundary;
- ``sample_now`` runs one tick at once and re-anchors the schedule on it; a
  request made while a tick is running is absorbed by that tick.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from devmon.application.ports.device import DeviceCommandPort
from devmon.config import (
    CPUINFO_COMMAND,
    DEFAULT_COMMAND_TIMEOUT_SEC,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_INTERVAL_SEC,
    METRIC_COMMANDS,
)
from devmon.core.errors import AppError, CommunicationFailure, ConfigurationError
from devmon.core.events import EventBus, MetricSkipped, TickCompleted
from devmon.core.jobs import CancelToken
from devmon.core.observability.timing import time_block
from devmon.monitoring.domain import (
    ALL_METRICS,
    DataPoint,
    MetricKind,
    SessionState,
    TickReport,
    validate_interval,
)
from devmon.monitoring.parsers import PARSERS, count_cpu_cores, parse_device_details
from devmon.monitoring.store import TimeSeriesStore

logger = logging.getLogger(__name__)

DegradedCallback = Callable[[int, str], None]

# Extra wait on top of the command timeout before the future is given up on.
_RESULT_GRACE_SEC = 0.5


def next_deadline(previous_due: float, interval: float, now: float) -> float:
    """First boundary ``previous_due + k * interval`` (k >= 1) strictly after ``now``.

    Boundaries that already passed are dropped, never queued.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    due = previous_due + interval
    if due > now:
        return due
    k = math.floor((now - previous_due) / interval) + 1
    due = previous_due + k * interval
    while due <= now:
        due += interval
    return due


def missed_boundaries(previous_due: float, interval: float, due: float) -> int:
    """How many boundaries lie strictly between ``previous_due`` and ``due``."""
    return max(0, round((due - previous_due) / interval) - 1)


class SamplingScheduler:
    """Runs ticks for one device session until stopped, cancelled or degraded."""

    def __init__(
        self,
        client: DeviceCommandPort,
        store: TimeSeriesStore,
        *,
        interval_sec: float = DEFAULT_INTERVAL_SEC,
        command_timeout_sec: float = DEFAULT_COMMAND_TIMEOUT_SEC,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        event_bus: EventBus | None = None,
        on_degraded: DegradedCallback | None = None,
        commands: Mapping[str, str] | None = None,
        cpuinfo_command: str | None = CPUINFO_COMMAND,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if command_timeout_sec <= 0:
            raise ConfigurationError(f"Command timeout must be positive, got {command_timeout_sec!r}")
        if failure_threshold < 1:
            raise ConfigurationError(f"Failure threshold must be >= 1, got {failure_threshold!r}")
        self._client = client
        self._store = store
        self._interval = validate_interval(interval_sec)
        self._timeout = float(command_timeout_sec)
        self._threshold = int(failure_threshold)
        self._bus = event_bus
        self._on_degraded = on_degraded
        cmds = dict(METRIC_COMMANDS if commands is None else commands)
        self._commands = {m: cmds[m.value] for m in ALL_METRICS}
        self._cpuinfo_command = cpuinfo_command
        self._cpu_cores: int | None = None
        self._clock = clock

        self._state_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._wake = threading.Event()
        self._state = SessionState.STOPPED
        self._token = CancelToken()
        self._generation = store.open_writer()
        self._thread: threading.Thread | None = None
        self._pool: ThreadPoolExecutor | None = None
        self._manual_requested = False
        self._reschedule = False
        self._in_tick = False

        self._tick_no = 0
        self._last_tick: float | None = None
        self._skipped_boundaries = 0
        self._consecutive_failed_ticks = 0
        self._failure_streaks: dict[MetricKind, int] = {m: 0 for m in ALL_METRICS}
        self._degraded = False

    # --- State ---
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SessionState.RUNNING

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def command_timeout(self) -> float:
        return self._timeout

    @property
    def last_tick(self) -> float | None:
        return self._last_tick

    @property
    def tick_count(self) -> int:
        return self._tick_no

    @property
    def skipped_boundaries(self) -> int:
        """Boundaries dropped because a tick overran its interval."""
        return self._skipped_boundaries

    @property
    def consecutive_failed_ticks(self) -> int:
        return self._consecutive_failed_ticks

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def cpu_cores(self) -> int | None:
        return self._cpu_cores

    def failure_streaks(self) -> dict[MetricKind, int]:
        return dict(self._failure_streaks)

    # --- Control ---
    def start(self) -> None:
        with self._state_lock:
            if self._state is SessionState.RUNNING:
                return
            self._token = CancelToken()
            self._generation = self._store.open_writer()
            self._wake.clear()
            self._manual_requested = False
            self._reschedule = False
            self._degraded = False
            self._consecutive_failed_ticks = 0
            self._state = SessionState.RUNNING
            token = self._token
            self._thread = threading.Thread(
                target=self._loop,
                args=(token,),
                name=f"sampler-{self._store.device or 'device'}",
                daemon=True,
            )
            thread = self._thread
        logger.info(
            "Sampler started (interval %.1fs, timeout %.1fs)",
            self._interval,
            self._timeout,
            extra={"device": self._store.device},
        )
        thread.start()

    def stop(self) -> None:
        """Stop ticking. Safe from any thread, including the sampler's own."""
        with self._state_lock:
            pool, self._pool = self._pool, None
            if self._state is SessionState.STOPPED:
                if pool is not None:
                    pool.shutdown(wait=False)
                return
            self._state = SessionState.STOPPED
            self._token.cancel()
        # After this returns, no in-flight tick can write into the store.
        self._store.close_writer()
        self._wake.set()
        if pool is not None:
            pool.shutdown(wait=False, cancel_futures=True)
        logger.info("Sampler stopped", extra={"device": self._store.device})

    def join(self, timeout: float | None = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def set_interval(self, seconds: float) -> None:
        sec = validate_interval(seconds)
        with self._state_lock:
            self._interval = sec
            self._reschedule = True
        self._wake.set()

    def sample_now(self) -> bool:
        """Ask the loop for an immediate tick; False when not running.

        A request that arrives while a tick is already running is absorbed by
        that tick instead of queuing a second one right behind it.
        """
        with self._state_lock:
            if self._state is not SessionState.RUNNING:
                return False
            if self._in_tick:
                return True
            self._manual_requested = True
        self._wake.set()
        return True

    def run_tick(self, *, manual: bool = False) -> TickReport:
        """Run one tick synchronously on the calling thread."""
        return self._tick(self._token, self._generation, manual)

    # --- Loop ---
    def _take_requests(self) -> tuple[bool, bool]:
        with self._state_lock:
            manual, self._manual_requested = self._manual_requested, False
            reschedule, self._reschedule = self._reschedule, False
            return manual, reschedule

    def _loop(self, token: CancelToken) -> None:
        generation = self._generation
        anchor: float | None = None
        due = self._clock()
        while not token.is_cancelled():
            self._wake.clear()
            manual, reschedule = self._take_requests()
            now = self._clock()
            if reschedule and anchor is not None:
                due = next_deadline(anchor, self._interval, now)
            if not manual and now < due:
                self._wake.wait(due - now)
                continue

            with self._state_lock:
                self._in_tick = True
                self._manual_requested = False
            try:
                self._tick(token, generation, manual)
            except Exception:
                logger.exception("Sampling tick crashed", extra={"device": self._store.device})
            finally:
                with self._state_lock:
                    self._in_tick = False
            if token.is_cancelled():
                break

            anchor = now if (manual or anchor is None) else due
            finished = self._clock()
            due = next_deadline(anchor, self._interval, finished)
            skipped = missed_boundaries(anchor, self._interval, due)
            if skipped:
                self._skipped_boundaries += skipped
                logger.debug(
                    "Tick overran the interval; skipping %d boundary(ies)",
                    skipped,
                    extra={"device": self._store.device, "tick": self._tick_no},
                )

    # --- Tick ---
    def _tick(self, token: CancelToken, generation: int, manual: bool) -> TickReport:
        with self._tick_lock:
            started = self._clock()
            self._tick_no += 1
            self._last_tick = started
            report = TickReport(tick=self._tick_no, started_at=started, manual=manual)
            if token.is_cancelled():
                report.discarded = True
                return report
            with time_block(f"tick {self._tick_no}", logger=logger):
                outputs = self._fetch_all(report)
                values: dict[MetricKind, float] = {}
                for metric, text in outputs.items():
                    result = PARSERS[metric](text)
                    if result.ok:
                        values[metric] = result.unwrap()
                    elif result.failure is not None:
                        report.skipped[metric] = result.failure

                if token.is_cancelled():
                    report.discarded = True
                    return report

                timestamp = self._store.elapsed(started)
                for metric in ALL_METRICS:
                    if metric not in values:
                        continue
                    point = DataPoint(timestamp=timestamp, value=values[metric])
                    if self._store.append(metric, point, generation=generation):
                        report.appended[metric] = point
                    else:
                        report.discarded = True
                if report.discarded:
                    return report

                battery = outputs.get(MetricKind.BATTERY_LEVEL) or outputs.get(
                    MetricKind.BATTERY_TEMPERATURE
                )
                report.details = parse_device_details(
                    outputs.get(MetricKind.CPU_LOAD),
                    outputs.get(MetricKind.MEMORY_USAGE_PCT),
                    battery,
                    cpu_cores=self._cpu_cores,
                )
                if not self._store.update_details(report.details, generation=generation):
                    report.discarded = True
                    return report

            self._record_outcome(report)
        self._publish(report)
        self._check_degraded(report)
        return report

    def _ensure_pool(self) -> ThreadPoolExecutor:
        with self._state_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=2 * len(ALL_METRICS), thread_name_prefix="devcmd"
                )
            return self._pool

    def _fetch_all(self, report: TickReport) -> dict[MetricKind, str]:
        pool = self._ensure_pool()
        futures: dict[MetricKind, Future[str]] = {}
        for metric in ALL_METRICS:
            command = self._commands[metric]
            try:
                futures[metric] = pool.submit(self._client.execute, command, self._timeout)
            except RuntimeError as e:
                report.skipped[metric] = CommunicationFailure(
                    "sampler is shutting down", cause=e, command=command
                )
        cpuinfo = self._submit_cpuinfo(pool)

        deadline = time.monotonic() + self._timeout + _RESULT_GRACE_SEC
        outputs: dict[MetricKind, str] = {}
        for metric, fut in futures.items():
            command = self._commands[metric]
            remaining = max(0.0, deadline - time.monotonic())
            try:
                outputs[metric] = fut.result(timeout=remaining)
            except FutureTimeoutError:
                fut.cancel()
                report.skipped[metric] = CommunicationFailure(
                    f"'{command}' timed out after {self._timeout:g}s", command=command
                )
            except CommunicationFailure as e:
                report.skipped[metric] = e
            except Exception as e:  # noqa: BLE001
                report.skipped[metric] = CommunicationFailure(
                    f"'{command}' failed", cause=e, command=command
                )
        if cpuinfo is not None:
            self._collect_cpuinfo(cpuinfo, deadline)
        return outputs

    def _submit_cpuinfo(self, pool: ThreadPoolExecutor) -> Future[str] | None:
        # One attempt per scheduler; the core count does not change mid-session.
        command = self._cpuinfo_command
        if command is None:
            return None
        self._cpuinfo_command = None
        try:
            return pool.submit(self._client.execute, command, self._timeout)
        except RuntimeError:
            return None

    def _collect_cpuinfo(self, fut: Future[str], deadline: float) -> None:
        try:
            text = fut.result(timeout=max(0.0, deadline - time.monotonic()))
        except FutureTimeoutError:
            fut.cancel()
            logger.debug("cpuinfo timed out", extra={"device": self._store.device})
            return
        except Exception as e:  # noqa: BLE001
            logger.debug("cpuinfo unavailable: %s", e, extra={"device": self._store.device})
            return
        self._cpu_cores = count_cpu_cores(text)

    def _record_outcome(self, report: TickReport) -> None:
        for metric in ALL_METRICS:
            if isinstance(report.skipped.get(metric), CommunicationFailure):
                self._failure_streaks[metric] += 1
            else:
                self._failure_streaks[metric] = 0
        if report.all_failed_communication:
            self._consecutive_failed_ticks += 1
        else:
            self._consecutive_failed_ticks = 0

    def _publish(self, report: TickReport) -> None:
        device = self._store.device
        for metric, err in report.skipped.items():
            logger.debug(
                "Skipped %s: %s",
                metric.value,
                err,
                extra={"device": device, "metric": metric.value, "tick": report.tick},
            )
        if self._bus is None:
            return
        for metric, err in report.skipped.items():
            self._bus.publish(
                MetricSkipped(device=device, tick=report.tick, metric=metric.value, error=str(err))
            )
        self._bus.publish(TickCompleted(device=device, report=report))

    def _check_degraded(self, report: TickReport) -> None:
        if self._degraded or self._consecutive_failed_ticks < self._threshold:
            return
        self._degraded = True
        last_error: AppError | None = next(iter(report.skipped.values()), None)
        message = str(last_error) if last_error is not None else "no response"
        logger.warning(
            "Device unreachable for %d consecutive ticks",
            self._consecutive_failed_ticks,
            extra={"device": self._store.device, "reason": "degraded"},
        )
        if self._on_degraded is not None:
            self._on_degraded(self._consecutive_failed_ticks, message)
        else:
            self.stop()
