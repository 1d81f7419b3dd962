"""Append-only, de-duplicating history for lights and sensors.

A state entity (light or binary sensor) records a StateEvent only when the new
state differs from the last recorded entry; an empty history always records.
A continuous sensor records a ValueEvent only when the value moves.
"""
from __future__ import annotations
from typing import Union

from .models import (
    BinarySensor,
    ContinuousSensor,
    DurationEvent,
    HistoryEvent,
    Light,
    StateEvent,
    ValueEvent,
)

StateEntity = Union[Light, BinarySensor]


def _append(history: list[HistoryEvent], event: HistoryEvent, max_entries: int) -> None:
    history.append(event)
    if max_entries > 0 and len(history) > max_entries:
        del history[: len(history) - max_entries]


def record_state(entity: StateEntity, state: bool, timestamp: int, max_entries: int = 0) -> bool:
    """Append a StateEvent unless the last entry already holds `state`."""
    last = entity.history[-1] if entity.history else None
    if isinstance(last, StateEvent) and last.state == state:
        return False
    _append(entity.history, StateEvent(timestamp=timestamp, state=state), max_entries)
    return True


def record_value(sensor: ContinuousSensor, value: float, timestamp: int, max_entries: int = 0) -> bool:
    if value == sensor.current:
        return False
    sensor.current = value
    _append(sensor.history, ValueEvent(timestamp=timestamp, value=value), max_entries)
    return True


def record_duration(light: Light, duration: int, timestamp: int, max_entries: int = 0) -> None:
    _append(light.history, DurationEvent(timestamp=timestamp, duration=duration), max_entries)
