"""Fixed-rate sampling loop feeding the history store."""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..errors import CycleFailure, SamplerStateError
from ..utils.metrics import Sample
from ..utils.status import BatchStatus
from .aggregator import aggregate
from .dispatcher import Dispatcher
from .history_store import HistoryStore
from .runtime_metrics import collect_runtime_metrics
from .target_registry import TargetRegistry


class SamplerState(Enum):
    """Lifecycle of a sampler."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class Clock:
    """Time source for the ticker loop; replaced by a fake clock in tests."""

    def monotonic(self) -> float:
        return time.monotonic()

    def time(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


@dataclass(eq=False)
class _Run:
    """Bookkeeping for one start()..stop() span of the ticker loop."""

    interval_seconds: float
    stop_event: threading.Event = field(default_factory=threading.Event)
    loop: Optional[asyncio.AbstractEventLoop] = None
    wakeup: Optional[asyncio.Event] = None
    thread: Optional[threading.Thread] = None
    discarded: bool = False


class Sampler:
    """
    Drives collection cycles at a fixed interval.

    Each cycle snapshots runtime metrics, probes the registry's current
    targets through the dispatcher, aggregates the results and appends one
    Sample to the history store. Cycles never overlap: ticks that pass
    while a cycle is still running are skipped, not queued. A failing
    cycle is logged and the schedule carries on.
    """

    def __init__(
        self,
        registry: TargetRegistry,
        dispatcher: Dispatcher,
        store: HistoryStore,
        runtime_snapshot: Callable[[], Dict[str, Any]] = collect_runtime_metrics,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize sampler.

        Args:
            registry: Targets probed on every cycle
            dispatcher: Runs the probes of one batch
            store: Receives one sample per successful cycle
            runtime_snapshot: Callable returning the runtime metrics map
            clock: Time source (defaults to the system clock)
            logger: Optional logger instance
        """
        self.registry = registry
        self.dispatcher = dispatcher
        self.store = store
        self.runtime_snapshot = runtime_snapshot
        self.clock = clock or Clock()
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

        self._lock = threading.Lock()
        self._state = SamplerState.IDLE
        self._run: Optional[_Run] = None
        self._cycle_number = 0

        self.cycles_completed = 0
        self.failed_cycles = 0
        self.skipped_ticks = 0

    @property
    def state(self) -> SamplerState:
        with self._lock:
            return self._state

    @property
    def interval_seconds(self) -> Optional[float]:
        with self._lock:
            return self._run.interval_seconds if self._run else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, interval_seconds: float) -> None:
        """
        Start sampling on a background daemon thread.

        The first cycle runs immediately.

        Raises:
            SamplerStateError: If already running or the interval is not positive
        """
        run = self._begin(interval_seconds)
        thread = threading.Thread(
            target=self._thread_main,
            args=(run,),
            name="healthmon-sampler",
            daemon=True
        )
        run.thread = thread
        thread.start()
        self.logger.info(f"Sampling started every {interval_seconds:g} seconds")

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop sampling. Calling stop on a sampler that is not running is a no-op.

        The in-flight cycle, if any, is allowed to finish and its sample is
        kept. If the sampling thread does not finish within ``timeout``
        seconds, whatever it produces afterwards is discarded.
        """
        with self._lock:
            run = self._run
            if self._state != SamplerState.RUNNING or run is None:
                return
            self._state = SamplerState.STOPPED
            self._run = None
            run.stop_event.set()
            loop, wakeup, thread = run.loop, run.wakeup, run.thread

        self.logger.info("Stopping sampler...")

        if loop is not None and wakeup is not None:
            try:
                loop.call_soon_threadsafe(wakeup.set)
            except RuntimeError:
                # Loop already closed; the thread is on its way out
                pass

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                self.logger.warning(
                    f"Sampling thread still busy after {timeout}s, discarding its in-flight cycle"
                )
                with self._lock:
                    run.discarded = True

        self.logger.info("Sampler stopped")

    def restart(self, interval_seconds: float) -> None:
        """Change the interval: stop, then start afresh with the new interval."""
        self.stop()
        self.start(interval_seconds)

    async def run(self, interval_seconds: float, cycles: Optional[int] = None) -> None:
        """
        Run the ticker loop in the current event loop.

        Args:
            interval_seconds: Time between cycle starts
            cycles: Stop after this many cycles; run until stop() when None

        Raises:
            SamplerStateError: If already running or the interval is not positive
        """
        run = self._begin(interval_seconds)
        try:
            await self._tick_loop(run, cycles)
        finally:
            self._finish(run)

    def _begin(self, interval_seconds: float) -> _Run:
        if interval_seconds is None or interval_seconds <= 0:
            raise SamplerStateError(f"Interval must be positive, got {interval_seconds}")

        with self._lock:
            if self._state == SamplerState.RUNNING:
                raise SamplerStateError("Sampler is already running")
            run = _Run(interval_seconds=interval_seconds)
            self._run = run
            self._state = SamplerState.RUNNING
        return run

    def _finish(self, run: _Run) -> None:
        """Return to IDLE when a run ends on its own (not through stop())."""
        with self._lock:
            if self._run is run:
                self._run = None
                self._state = SamplerState.IDLE

    def _thread_main(self, run: _Run) -> None:
        try:
            asyncio.run(self._tick_loop(run))
        except Exception:
            self.logger.error("Sampling loop terminated unexpectedly", exc_info=True)
        finally:
            self._finish(run)

    # ------------------------------------------------------------------
    # Ticker loop
    # ------------------------------------------------------------------

    async def _tick_loop(self, run: _Run, cycles: Optional[int] = None) -> None:
        interval = run.interval_seconds
        wakeup = asyncio.Event()
        with self._lock:
            run.loop = asyncio.get_running_loop()
            run.wakeup = wakeup

        completed = 0
        next_tick = self.clock.monotonic()

        while not run.stop_event.is_set():
            await self.run_cycle(run)
            completed += 1
            if cycles is not None and completed >= cycles:
                break

            next_tick += interval
            now = self.clock.monotonic()
            if now > next_tick:
                missed = int((now - next_tick) // interval) + 1
                self.skipped_ticks += missed
                self.logger.warning(
                    f"Cycle overran its {interval:g}s interval, skipping {missed} tick(s)"
                )
                next_tick += missed * interval

            await self._wait(next_tick - now, run, wakeup)

    async def _wait(self, delay: float, run: _Run, wakeup: asyncio.Event) -> None:
        """Sleep until the next tick or until stop() wakes the loop."""
        if delay <= 0 or run.stop_event.is_set():
            return

        sleeper = asyncio.ensure_future(self.clock.sleep(delay))
        waker = asyncio.ensure_future(wakeup.wait())
        try:
            await asyncio.wait({sleeper, waker}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waker.cancel()

    # ------------------------------------------------------------------
    # Collection cycle
    # ------------------------------------------------------------------

    async def collect_sample(self, cycle: int = 0) -> Sample:
        """
        Build one sample without recording it.

        Raises:
            CycleFailure: If the runtime snapshot fails
        """
        started = self.clock.monotonic()
        timestamp = self.clock.time()

        try:
            runtime = self.runtime_snapshot()
        except Exception as e:
            raise CycleFailure(f"Runtime snapshot failed: {e}") from e

        targets = self.registry.snapshot()
        results = await self.dispatcher.dispatch(targets)
        summary = aggregate(results)

        return Sample(
            cycle=cycle,
            timestamp=timestamp,
            runtime=runtime,
            summary=summary,
            duration_ms=(self.clock.monotonic() - started) * 1000,
            results=tuple(results),
        )

    async def run_cycle(self, run: Optional[_Run] = None) -> Optional[Sample]:
        """
        Run one collection cycle and append its sample to the store.

        Returns:
            Optional[Sample]: The recorded sample, or None if the cycle
            failed or was discarded
        """
        self._cycle_number += 1
        cycle = self._cycle_number
        self.logger.debug(f"Starting monitoring cycle {cycle}")

        try:
            sample = await self.collect_sample(cycle)
        except Exception as e:
            self.failed_cycles += 1
            self.logger.error(
                "Monitoring cycle failed",
                exc_info=True,
                extra={
                    "cycle": cycle,
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                }
            )
            return None

        with self._lock:
            if run is not None and run.discarded:
                self.logger.warning(f"Discarding sample of cycle {cycle} completed after stop")
                return None
            self.store.append(sample)
            self.cycles_completed += 1

        self._log_status(sample)
        return sample

    def _log_status(self, sample: Sample) -> None:
        summary = sample.summary
        if summary.status == BatchStatus.NO_TARGETS:
            self.logger.info(f"Cycle {sample.cycle} complete: no targets configured")
            return

        self.logger.info(
            f"Health Status: {summary.status.value} "
            f"({summary.success_count}/{summary.total} targets healthy)",
            extra={
                "cycle": sample.cycle,
                "duration_ms": round(sample.duration_ms, 1),
                "failing_targets": list(summary.failing_targets)
            }
        )
