from __future__ import annotations
import asyncio
import contextlib
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from ..core.timeutil import now_ms, now_utc
from ..domain.history import record_state
from ..domain.models import SimulationState
from ..storage.serialized import SerializedStore

logger = logging.getLogger(__name__)


class BurstPhase(str, Enum):
    IDLE = "idle"
    ARMED = "armed"      # waiting to switch the sensor on
    ACTIVE = "active"    # sensor on, waiting to switch it off


@dataclass(frozen=True)
class BurstTiming:
    arm_min_s: float = 180.0
    arm_max_s: float = 300.0
    active_min_s: float = 1.0
    active_max_s: float = 5.0


class MotionBurstScheduler:
    """Drives sporadic motion bursts on the dynamic motion sensor.

    At most one burst is in flight: `maybe_arm` only starts a new one from
    IDLE. Each phase does its own load -> mutate -> save through the
    serialized store, so a concurrent tick cannot clobber it.
    """

    def __init__(
        self,
        store: SerializedStore,
        timing: BurstTiming = BurstTiming(),
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
        max_history_entries: int = 0,
    ) -> None:
        self._store = store
        self._timing = timing
        self._rng = rng or random.Random()
        self._clock = clock
        self._max_history = max_history_entries

        self.phase = BurstPhase.IDLE
        self._task: Optional[asyncio.Task] = None
        self._arm_at: Optional[datetime] = None
        self._disarm_at: Optional[datetime] = None

    @property
    def in_flight(self) -> bool:
        return self.phase is not BurstPhase.IDLE

    def status(self) -> dict:
        return {
            "phase": self.phase.value,
            "armAt": self._arm_at.isoformat() if self._arm_at else None,
            "disarmAt": self._disarm_at.isoformat() if self._disarm_at else None,
        }

    def maybe_arm(self) -> bool:
        if self.in_flight:
            logger.debug("Motion burst already in flight (phase=%s), not arming", self.phase.value)
            return False

        delay = self._rng.uniform(self._timing.arm_min_s, self._timing.arm_max_s)
        self.phase = BurstPhase.ARMED
        self._arm_at = now_utc() + timedelta(seconds=delay)
        self._task = asyncio.create_task(self._run(delay), name="motion_burst")
        logger.info("Motion burst armed, fires in %.1fs", delay)
        return True

    async def _run(self, arm_delay: float) -> None:
        try:
            await asyncio.sleep(arm_delay)
            await self._set_sensor(True)

            active = self._rng.uniform(self._timing.active_min_s, self._timing.active_max_s)
            self.phase = BurstPhase.ACTIVE
            self._arm_at = None
            self._disarm_at = now_utc() + timedelta(seconds=active)
            logger.info("Motion burst active for %.1fs", active)

            await asyncio.sleep(active)
            await self._set_sensor(False)
            logger.info("Motion burst finished")
        except asyncio.CancelledError:
            logger.info("Motion burst cancelled (phase=%s)", self.phase.value)
            raise
        except Exception as e:
            logger.exception("Motion burst failed: %s", e)
        finally:
            self._reset()

    async def _set_sensor(self, on: bool) -> None:
        def apply(state: SimulationState) -> bool:
            sensor = state.motion_sensor_dynamic
            sensor.state = on
            record_state(sensor, on, self._clock(), self._max_history)
            return True

        await self._store.mutate(apply)

    async def join(self) -> None:
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def cancel(self) -> None:
        task = self._task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            # A task cancelled before its first step never reaches its finally
            self._reset()

    def _reset(self) -> None:
        self.phase = BurstPhase.IDLE
        self._arm_at = None
        self._disarm_at = None
        self._task = None
