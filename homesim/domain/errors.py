from __future__ import annotations


class SimulationError(Exception):
    """Base class for simulator domain errors."""


class NotFoundError(SimulationError):
    pass


class LightNotFoundError(NotFoundError):
    def __init__(self, light_id: object) -> None:
        super().__init__(f"Light {light_id} not found")
        self.light_id = light_id


class MalformedStateError(SimulationError):
    """Persisted document could not be parsed into a SimulationState."""
