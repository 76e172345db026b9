"""
Top-of-hour poll scheduling with a live countdown.

The poller is either idle or scheduled. Starting it polls once right away and
then fires at every wall-clock hour boundary; manual checks poll immediately
without moving the schedule. Any configuration change goes through restart(),
which cancels both timers and any running poll before scheduling again.
"""
from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

log = logging.getLogger("worker")


def _now() -> datetime:
    return datetime.now().astimezone()


def next_top_of_hour(now: datetime) -> datetime:
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def seconds_until_next_top_of_hour(now: datetime) -> float:
    return (next_top_of_hour(now) - now).total_seconds()


def format_countdown(seconds: float) -> str:
    """1h 2m 3s / 2m 3s / 3s. Negative values count as zero."""
    total = int(max(0, seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes or hours:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


class PollerState(enum.Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"


class Poller:
    def __init__(
        self,
        poll: Callable[[], Awaitable[object]],
        clock: Callable[[], datetime] = _now,
        on_tick: Optional[Callable[[float], None]] = None,
    ):
        self._poll = poll
        self._clock = clock
        self._on_tick = on_tick
        self.state = PollerState.IDLE
        self.next_fire: Optional[datetime] = None
        self.countdown: float = 0.0
        self._schedule_task: Optional[asyncio.Task] = None
        self._countdown_task: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def remaining(self, now: Optional[datetime] = None) -> float:
        """Seconds until the next scheduled poll, derived from the wall clock."""
        now = now or self._clock()
        if self.next_fire is not None:
            left = (self.next_fire - now).total_seconds()
            if left > 0:
                return left
        return seconds_until_next_top_of_hour(now)

    def start(self) -> None:
        if self.state is PollerState.SCHEDULED:
            return
        self.state = PollerState.SCHEDULED
        self.next_fire = next_top_of_hour(self._clock())
        self.trigger()
        self._schedule_task = asyncio.create_task(self._schedule_loop())
        self._countdown_task = asyncio.create_task(self._countdown_loop())
        log.info("Poller scheduled", extra={"next_fire": self.next_fire.isoformat()})

    async def stop(self) -> None:
        """Cancel both timers and any poll still in flight."""
        tasks = [t for t in (self._schedule_task, self._countdown_task) if t is not None]
        if self.busy and self._in_flight is not asyncio.current_task():
            log.info("Cancelling in-flight poll")
            tasks.append(self._in_flight)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._schedule_task = None
        self._countdown_task = None
        self._in_flight = None
        self.next_fire = None
        self.state = PollerState.IDLE

    async def restart(self) -> None:
        await self.stop()
        self.start()

    def trigger(self) -> Optional[asyncio.Task]:
        """Start a poll now unless one is still running."""
        if self.busy:
            log.info("Poll already in flight, ignoring trigger")
            return None
        self._in_flight = asyncio.create_task(self._run_poll())
        return self._in_flight

    def check_now(self) -> Optional[asyncio.Task]:
        return self.trigger()

    async def wait_idle(self) -> None:
        if self._in_flight is not None:
            await self._in_flight

    async def _run_poll(self) -> None:
        try:
            await self._poll()
        except Exception:
            log.exception("Poll failed")

    async def _schedule_loop(self) -> None:
        if self.next_fire is None:
            self.next_fire = next_top_of_hour(self._clock())
        while True:
            delay = (self.next_fire - self._clock()).total_seconds()
            await asyncio.sleep(max(0.0, delay))
            fired = self.next_fire
            self.trigger()
            # An early wakeup must not land on the boundary that just fired.
            self.next_fire = next_top_of_hour(max(self._clock(), fired))

    async def _countdown_loop(self) -> None:
        while True:
            self.countdown = self.remaining()
            if self._on_tick is not None:
                self._on_tick(self.countdown)
            await asyncio.sleep(1)


__all__ = [
    "next_top_of_hour",
    "seconds_until_next_top_of_hour",
    "format_countdown",
    "PollerState",
    "Poller",
]
