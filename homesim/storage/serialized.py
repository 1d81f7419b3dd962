from __future__ import annotations
import asyncio
from typing import Callable

from ..domain.interfaces import StateStore
from ..domain.models import SimulationState


class SerializedStore:
    """Single mutual-exclusion boundary around a StateStore.

    Ticks, light commands and motion-burst phases all go through `mutate`, so
    no load -> mutate -> save sequence can interleave with another one.
    """

    def __init__(self, store: StateStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    async def read(self) -> SimulationState:
        async with self._lock:
            return await self._store.load()

    async def mutate(self, fn: Callable[[SimulationState], bool]) -> SimulationState:
        """Load, apply `fn`, and save only when `fn` reports a change."""
        async with self._lock:
            state = await self._store.load()
            if fn(state):
                await self._store.save(state)
            return state
