from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..core.timeutil import now_ms, now_utc
from ..domain.models import SimulationState
from ..drivers.sensors_sim import AmbientDrift
from ..storage.serialized import SerializedStore
from .motion import MotionBurstScheduler


logger = logging.getLogger(__name__)


@dataclass
class TickStats:
    ticks: int = 0
    last_tick_utc: Optional[datetime] = None
    last_error: Optional[str] = None


class TickDriver:
    def __init__(
        self,
        store: SerializedStore,
        drift: AmbientDrift,
        motion: MotionBurstScheduler,
        tick_seconds: float = 180,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._drift = drift
        self._motion = motion
        self._tick_seconds = tick_seconds
        self._clock = clock

        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

        self.stats = TickStats()

    async def tick(self) -> SimulationState:
        """Drift the sensors, arm a motion burst if none is pending, and save."""

        def apply(state: SimulationState) -> bool:
            self._drift.apply(state, self._clock())
            self._motion.maybe_arm()
            # Saved even when nothing moved; the row's updated_at doubles as a heartbeat
            return True

        state = await self._store.mutate(apply)
        self.stats.ticks += 1
        self.stats.last_tick_utc = now_utc()
        logger.debug(
            "Tick %d: temperature=%.1f humidity=%.1f motion=%s",
            self.stats.ticks,
            state.temperature.current,
            state.humidity.current,
            self._motion.phase.value,
        )
        return state

    async def start(self) -> None:
        # First tick runs before the loop so the initial state is persisted on startup
        await self.tick()
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="tick_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None
        await self._motion.cancel()

    async def _run(self) -> None:
        logger.info("Tick loop started (tick_seconds=%s)", self._tick_seconds)

        while not self._stop.is_set():
            # sleep with cancellation awareness
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._tick_seconds)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.tick()
                self.stats.last_error = None
            except Exception as e:
                self.stats.last_error = str(e)
                logger.exception("Tick loop error: %s", e)

        logger.info("Tick loop stopped")
