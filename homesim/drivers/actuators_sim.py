from __future__ import annotations
import logging

from ..domain.errors import LightNotFoundError
from ..domain.history import record_duration, record_state
from ..domain.models import Light, SimulationState

logger = logging.getLogger(__name__)


class LightController:
    def __init__(self, max_history_entries: int = 0) -> None:
        self._max_history = max_history_entries

    @staticmethod
    def resolve(state: SimulationState, light_id: int | str) -> int:
        # 1 and "1" address the same light
        wanted = str(light_id).strip()
        for lid in state.lights:
            if str(lid) == wanted:
                return lid
        raise LightNotFoundError(light_id)

    def set_light(self, state: SimulationState, light_id: int | str, on: bool, now: int) -> tuple[bool, Light]:
        """Apply a light command in place. Returns (changed, light)."""
        light = state.lights[self.resolve(state, light_id)]
        if light.state == on:
            return False, light

        if on:
            light.active_since = now
        else:
            if light.active_since is None:
                logger.warning("Light %s was on without activeSince, recording zero duration", light_id)
                duration = 0
            else:
                duration = max(0, now - light.active_since)
            record_duration(light, duration, now, self._max_history)
            light.active_since = None

        light.state = on
        record_state(light, on, now, self._max_history)
        logger.info("LIGHT %s set_state=%s", light_id, on)
        return True, light
