from __future__ import annotations
from typing import Protocol, runtime_checkable
from .models import SimulationState


@runtime_checkable
class StateStore(Protocol):
    async def init(self) -> None:
        ...

    async def load(self) -> SimulationState:
        ...

    async def save(self, state: SimulationState) -> None:
        ...
