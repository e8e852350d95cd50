"""
Advance strategies for the period scheduler.

Every execution discipline runs the same per-period state machine in
Simulation (Initializing -> Active -> Settling -> Logged); the only thing that
differs is how the Active phase walks through the pool's wake events:

- ImmediateAdvance: fire every wake at once, never suspend (sync)
- DeferredAdvance: suspend once at the period boundary, then fire every wake
  at once (cooperative async)
- PacedAdvance: map simulated wake times onto the wall clock and sleep until
  each one is due (real-time)
"""

import asyncio
import logging
import time
from typing import Callable, Iterable

from engine.config import RunMode
from engine.pool import WakeEvent
from traders.base import Agent

logger = logging.getLogger(__name__)

Fire = Callable[[Agent], None]


class ImmediateAdvance:
    """Run-to-completion: no suspension points."""

    def advance(self, wakes: Iterable[WakeEvent], fire: Fire) -> None:
        for _, agent in wakes:
            fire(agent)

    async def advance_async(self, wakes: Iterable[WakeEvent], fire: Fire) -> None:
        self.advance(wakes, fire)


class DeferredAdvance(ImmediateAdvance):
    """Yield to the event loop at the period boundary, then run the period."""

    async def advance_async(self, wakes: Iterable[WakeEvent], fire: Fire) -> None:
        await asyncio.sleep(0)
        self.advance(wakes, fire)


class PacedAdvance:
    """
    Wall-clock pacing.

    A period starting at simulated time ``start`` is anchored to the wall
    clock when advancing begins; a wake at simulated time t fires once
    ``(t - start) * scale`` seconds have elapsed. The period is allotted its
    full duration: after the last wake the strategy sleeps until the period's
    wall-clock end.

    Attributes:
        scale: Wall-clock seconds per simulated time unit
        start: Simulated start time of the period
        duration: Simulated length of the period
    """

    def __init__(self, scale: float, start: float, duration: float) -> None:
        self.scale = scale
        self.start = start
        self.duration = duration

    def _delay(self, t: float, anchor: float, now: float) -> float:
        return max(0.0, anchor + (t - self.start) * self.scale - now)

    def advance(self, wakes: Iterable[WakeEvent], fire: Fire) -> None:
        anchor = time.monotonic()
        for t, agent in wakes:
            delay = self._delay(t, anchor, time.monotonic())
            if delay > 0:
                time.sleep(delay)
            fire(agent)
        end = self._delay(self.start + self.duration, anchor, time.monotonic())
        if end > 0:
            time.sleep(end)

    async def advance_async(self, wakes: Iterable[WakeEvent], fire: Fire) -> None:
        loop = asyncio.get_running_loop()
        anchor = loop.time()
        for t, agent in wakes:
            await asyncio.sleep(self._delay(t, anchor, loop.time()))
            fire(agent)
        await asyncio.sleep(self._delay(self.start + self.duration, anchor, loop.time()))


AdvanceStrategy = ImmediateAdvance | PacedAdvance


def advance_strategy(
    mode: RunMode, scale: float, start: float, duration: float
) -> AdvanceStrategy:
    """Pick the advance strategy for a run mode."""
    if mode is RunMode.REALTIME:
        return PacedAdvance(scale, start, duration)
    if mode is RunMode.ASYNC:
        return DeferredAdvance()
    return ImmediateAdvance()


def deadline_reached(deadline: float | None, clock: Callable[[], float] = time.time) -> bool:
    """True if an absolute wall-clock deadline (epoch seconds) has passed."""
    return deadline is not None and clock() >= deadline
