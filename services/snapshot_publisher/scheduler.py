# services/snapshot_publisher/scheduler.py
from __future__ import annotations
import asyncio, time
from dataclasses import dataclass
from typing import Callable

from common.logging import get_logger
from services.snapshot_publisher.capture import FrameCapture
from services.snapshot_publisher.lifecycle import StopToken
from services.snapshot_publisher.publisher import SnapshotPublisher

log = get_logger("snapshot_publisher")

SLEEP_TICK = 1.0  # upper bound on stop latency while idle

@dataclass
class ScheduleState:
    interval: int
    next_deadline: float = 0.0
    skipped_total: int = 0

def advance_deadline(state: ScheduleState, cycle_start: float, cycle_end: float) -> int:
    """
    next_deadline = cycle_start + k*interval for the smallest k >= 1 with
    next_deadline >= cycle_end. Every extra interval is a skip. Returns the
    number skipped by this cycle.
    """
    state.next_deadline = cycle_start + state.interval
    skipped = 0
    while state.next_deadline < cycle_end:
        state.next_deadline += state.interval
        skipped += 1
    state.skipped_total += skipped
    return skipped

class Scheduler:
    def __init__(self, capture: FrameCapture, publisher: SnapshotPublisher, interval: int,
                 token: StopToken, clock: Callable[[], float] = time.time):
        if interval < 1:
            raise ValueError(f"interval must be >= 1, got {interval}")
        self.capture = capture
        self.publisher = publisher
        self.state = ScheduleState(interval=interval)
        self.token = token
        self._clock = clock

    async def run_cycle(self) -> bool:
        """Capture then publish. Soft failures are logged here and reported as False."""
        try:
            record = await self.capture.capture_frame()
            if record is None:
                log.warning("capture error, will retry")
                return False
            image = self.capture.buffer.view(record.size)
            if not await self.publisher.publish(image, record):
                log.warning(f"publish error for '{record.timestamp}', will retry")
                return False
            return True
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("cycle failed unexpectedly, will retry")
            return False

    async def _sleep_tick(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self.token.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def sleep_until(self, deadline: float) -> None:
        while self.token.running:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return
            await self._sleep_tick(min(SLEEP_TICK, remaining))

    async def run(self) -> None:
        log.info(f"executing (interval={self.state.interval} seconds)")
        while self.token.running:
            cycle_start = self._clock()
            await self.run_cycle()
            cycle_end = self._clock()
            skipped = advance_deadline(self.state, cycle_start, cycle_end)
            if skipped:
                log.warning(f"capture skipped ({skipped} now / {self.state.skipped_total} all)")
            await self.sleep_until(self.state.next_deadline)
        log.info(f"scheduler stopped (skipped_total={self.state.skipped_total})")
