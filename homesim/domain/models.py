from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from .errors import MalformedStateError


@dataclass(frozen=True)
class StateEvent:
    timestamp: int
    state: bool


@dataclass(frozen=True)
class ValueEvent:
    timestamp: int
    value: float


@dataclass(frozen=True)
class DurationEvent:
    timestamp: int
    duration: int  # milliseconds the light was on


HistoryEvent = Union[StateEvent, ValueEvent, DurationEvent]


@dataclass
class Light:
    state: bool = False
    active_since: Optional[int] = None
    history: list[HistoryEvent] = field(default_factory=list)


@dataclass
class BinarySensor:
    state: bool = False
    history: list[HistoryEvent] = field(default_factory=list)


@dataclass
class ContinuousSensor:
    current: float
    history: list[HistoryEvent] = field(default_factory=list)


@dataclass
class SimulationState:
    lights: dict[int, Light]
    motion_sensor_static: BinarySensor = field(default_factory=BinarySensor)
    gas_sensor: BinarySensor = field(default_factory=BinarySensor)
    motion_sensor_dynamic: BinarySensor = field(default_factory=BinarySensor)
    temperature: ContinuousSensor = field(default_factory=lambda: ContinuousSensor(current=22.0))
    humidity: ContinuousSensor = field(default_factory=lambda: ContinuousSensor(current=50.0))

    @classmethod
    def default(
        cls,
        light_ids: Iterable[int] = range(1, 7),
        temperature: float = 22.0,
        humidity: float = 50.0,
    ) -> "SimulationState":
        return cls(
            lights={lid: Light() for lid in light_ids},
            temperature=ContinuousSensor(current=temperature),
            humidity=ContinuousSensor(current=humidity),
        )

    def binary_sensors(self) -> dict[str, BinarySensor]:
        return {
            "motionSensorStatic": self.motion_sensor_static,
            "gasSensor": self.gas_sensor,
            "motionSensorDynamic": self.motion_sensor_dynamic,
        }

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "lights": {
                str(lid): {
                    "state": light.state,
                    "activeSince": light.active_since,
                    "history": [event_to_dict(e) for e in light.history],
                }
                for lid, light in sorted(self.lights.items())
            },
        }
        for name, sensor in self.binary_sensors().items():
            doc[name] = {
                "state": sensor.state,
                "history": [event_to_dict(e) for e in sensor.history],
            }
        for name, cont in (("temperature", self.temperature), ("humidity", self.humidity)):
            doc[name] = {
                "current": cont.current,
                "history": [event_to_dict(e) for e in cont.history],
            }
        return doc

    @classmethod
    def from_dict(cls, doc: Any) -> "SimulationState":
        """Parse the persisted JSON document. Raises MalformedStateError."""
        if not isinstance(doc, dict):
            raise MalformedStateError(f"document must be an object, got {type(doc).__name__}")

        raw_lights = _section(doc, "lights")
        lights: dict[int, Light] = {}
        for key, raw in raw_lights.items():
            try:
                lid = int(key)
            except (TypeError, ValueError):
                raise MalformedStateError(f"invalid light id: {key!r}")
            if not isinstance(raw, dict):
                raise MalformedStateError(f"light {key} must be an object")
            active_since = raw.get("activeSince")
            lights[lid] = Light(
                state=_bool(raw.get("state"), f"lights.{key}.state"),
                active_since=None if active_since is None else _int(active_since, f"lights.{key}.activeSince"),
                history=_history(raw.get("history", []), f"lights.{key}.history"),
            )

        def binary(name: str) -> BinarySensor:
            raw = _section(doc, name)
            return BinarySensor(
                state=_bool(raw.get("state"), f"{name}.state"),
                history=_history(raw.get("history", []), f"{name}.history"),
            )

        def continuous(name: str) -> ContinuousSensor:
            raw = _section(doc, name)
            return ContinuousSensor(
                current=_float(raw.get("current"), f"{name}.current"),
                history=_history(raw.get("history", []), f"{name}.history"),
            )

        return cls(
            lights=lights,
            motion_sensor_static=binary("motionSensorStatic"),
            gas_sensor=binary("gasSensor"),
            motion_sensor_dynamic=binary("motionSensorDynamic"),
            temperature=continuous("temperature"),
            humidity=continuous("humidity"),
        )


def event_to_dict(e: HistoryEvent) -> dict[str, Any]:
    if isinstance(e, DurationEvent):
        return {"timestamp": e.timestamp, "duration": e.duration}
    if isinstance(e, ValueEvent):
        return {"timestamp": e.timestamp, "value": e.value}
    return {"timestamp": e.timestamp, "state": e.state}


def event_from_dict(raw: Any, where: str = "event") -> HistoryEvent:
    # Entries are told apart by which payload field they carry
    if not isinstance(raw, dict):
        raise MalformedStateError(f"{where} must be an object")
    ts = _int(raw.get("timestamp"), f"{where}.timestamp")
    if "duration" in raw:
        return DurationEvent(timestamp=ts, duration=_int(raw["duration"], f"{where}.duration"))
    if "value" in raw:
        return ValueEvent(timestamp=ts, value=_float(raw["value"], f"{where}.value"))
    if "state" in raw:
        return StateEvent(timestamp=ts, state=_bool(raw["state"], f"{where}.state"))
    raise MalformedStateError(f"{where} has none of duration/value/state")


def _section(doc: dict, name: str) -> dict:
    raw = doc.get(name)
    if not isinstance(raw, dict):
        raise MalformedStateError(f"missing or invalid section: {name}")
    return raw


def _history(raw: Any, where: str) -> list[HistoryEvent]:
    if not isinstance(raw, list):
        raise MalformedStateError(f"{where} must be a list")
    return [event_from_dict(item, f"{where}[{i}]") for i, item in enumerate(raw)]


def _bool(v: Any, where: str) -> bool:
    if not isinstance(v, bool):
        raise MalformedStateError(f"{where} must be a boolean")
    return v


def _float(v: Any, where: str) -> float:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise MalformedStateError(f"{where} must be a number")
    try:
        f = float(v)
    except OverflowError:
        raise MalformedStateError(f"{where} is out of range")
    # json.loads accepts Infinity and NaN
    if not math.isfinite(f):
        raise MalformedStateError(f"{where} must be a finite number")
    return f


def _int(v: Any, where: str) -> int:
    f = _float(v, where)
    if not f.is_integer():
        raise MalformedStateError(f"{where} must be a whole number of milliseconds")
    return int(f)
