import copy

import pytest

from homesim.domain.models import SimulationState
from homesim.storage.serialized import SerializedStore


class MemoryStore:
    """StateStore keeping the document as a plain dict, like the SQLite row."""

    def __init__(self, state: SimulationState | None = None):
        self.doc = state.to_dict() if state is not None else None
        self.loads = 0
        self.saves = 0
        self.fail_saves = False

    async def init(self):
        pass

    async def load(self) -> SimulationState:
        self.loads += 1
        if self.doc is None:
            return SimulationState.default()
        return SimulationState.from_dict(copy.deepcopy(self.doc))

    async def save(self, state: SimulationState) -> None:
        if self.fail_saves:
            raise RuntimeError("disk full")
        self.saves += 1
        self.doc = state.to_dict()


class StepRandom:
    """Stand-in for random.Random whose uniform() always returns a chosen end."""

    def __init__(self, pick: str = "high"):
        self.pick = pick

    def uniform(self, a, b):
        if self.pick == "high":
            return b
        if self.pick == "low":
            return a
        return (a + b) / 2


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def serialized(memory_store):
    return SerializedStore(memory_store)
