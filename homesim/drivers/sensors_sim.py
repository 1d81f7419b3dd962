from __future__ import annotations
import random
from dataclasses import dataclass
from typing import Optional

from ..domain.history import record_state, record_value
from ..domain.models import ContinuousSensor, SimulationState


@dataclass(frozen=True)
class DriftRange:
    step: float      # delta drawn uniformly from [-step, +step]
    low: float
    high: float

    def clamp(self, v: float) -> float:
        return min(self.high, max(self.low, v))


TEMPERATURE_DRIFT = DriftRange(step=0.1, low=18.0, high=26.0)
HUMIDITY_DRIFT = DriftRange(step=3.0, low=30.0, high=80.0)


class AmbientDrift:
    """Bounded random walk for temperature and humidity.

    Values are rounded to one decimal and clamped (not reflected), so a value
    pinned at a bound can stay there for many ticks. The static motion and gas
    sensors idle back to off on every pass.
    """

    def __init__(
        self,
        temperature: DriftRange = TEMPERATURE_DRIFT,
        humidity: DriftRange = HUMIDITY_DRIFT,
        rng: Optional[random.Random] = None,
        max_history_entries: int = 0,
    ) -> None:
        self._temperature = temperature
        self._humidity = humidity
        self._rng = rng or random.Random()
        self._max_history = max_history_entries

    def _walk(self, sensor: ContinuousSensor, rng: DriftRange, ts: int) -> bool:
        delta = self._rng.uniform(-rng.step, rng.step)
        new_value = rng.clamp(round(sensor.current + delta, 1))
        return record_value(sensor, new_value, ts, self._max_history)

    def apply(self, state: SimulationState, ts: int) -> bool:
        """Advance one tick in place. Returns True if anything was recorded."""
        changed = self._walk(state.temperature, self._temperature, ts)
        changed = self._walk(state.humidity, self._humidity, ts) or changed

        for sensor in (state.motion_sensor_static, state.gas_sensor):
            if sensor.state is not False:
                sensor.state = False
                record_state(sensor, False, ts, self._max_history)
                changed = True
        return changed
