"""
Fixed-interval sampling: frame -> detector -> label.
"""
# core/scheduler.py
from __future__ import annotations
from typing import Literal, Optional, Set
import asyncio
import logging

from core.capability import CapabilityLoader
from core.mapper import RandomLabelMapper
from core.source import FrameSource, SourceReadinessGate, frame_size
from core.state import ObservableState

logger = logging.getLogger(__name__)

TickOutcome = Literal["busy", "not_ready", "empty", "labeled", "failed", "discarded"]


class SamplingScheduler:
    """
    Fires a tick every `interval` seconds without waiting for the previous one.

    At most one estimation is in flight: a tick that finds one running is
    skipped, not queued, so results are applied in issue order. stop() retires
    the current run; an estimation still in flight is left to finish and its
    result is dropped.
    """
    def __init__(self, loader: CapabilityLoader, gate: SourceReadinessGate, source: FrameSource,
                 mapper: RandomLabelMapper, state: ObservableState, interval: float = 1.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.loader = loader
        self.gate = gate
        self.source = source
        self.mapper = mapper
        self.state = state
        self.interval = float(interval)

        self._timer: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()
        self._run_id = 0
        self._stopped = True
        self._in_flight = False

        self.ticks = 0
        self.estimations = 0
        self.failures = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return not self._stopped

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # ---- lifecycle ----
    def start(self):
        if not self._stopped:
            return
        self._stopped = False
        self._run_id += 1
        self._timer = asyncio.create_task(self._run())
        logger.debug(f"[scheduler] started interval={self.interval}s run={self._run_id}")

    async def stop(self):
        if self._stopped:
            return
        self._stopped = True
        self._run_id += 1
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
        logger.debug(f"[scheduler] stopped run={self._run_id} in_flight={self._in_flight}")

    async def _run(self):
        while not self._stopped:
            task = asyncio.create_task(self.tick(self._run_id))
            self._ticks.add(task)
            task.add_done_callback(self._tick_done)
            await asyncio.sleep(self.interval)

    def _tick_done(self, task: asyncio.Task):
        self._ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.failures += 1
            logger.error("[scheduler] tick failed outside detection", exc_info=exc)

    # ---- one tick ----
    async def tick(self, run_id: Optional[int] = None) -> TickOutcome:
        """One sampling pass. `run_id` ties a timer-issued tick to the run that issued it."""
        if run_id is None:
            run_id = self._run_id
        elif run_id != self._run_id:
            return "discarded"
        self.ticks += 1
        if self._in_flight:
            self.skipped += 1
            logger.debug("[scheduler] previous estimation still running; skipping tick")
            return "busy"

        capability = self.loader.capability
        if capability is None or not self.gate.ready:
            return "not_ready"
        frame = self.source.snapshot()
        w, h = frame_size(frame)
        if w == 0 or h == 0:
            return "not_ready"

        self._in_flight = True
        self.estimations += 1
        try:
            regions = await capability.estimate(frame)
        except Exception:
            self.failures += 1
            logger.exception("[scheduler] face detection error")
            return "failed"
        finally:
            self._in_flight = False

        if run_id != self._run_id:
            logger.debug("[scheduler] estimation resolved after stop; result discarded")
            return "discarded"
        if not regions:
            return "empty"
        self.state.set_label(self.mapper.map(regions, self.state.label))
        return "labeled"
