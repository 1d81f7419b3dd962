from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from typing import Iterable

import aiosqlite

from ..domain.errors import MalformedStateError
from ..domain.models import SimulationState

logger = logging.getLogger(__name__)


class SQLiteStateStore:
    """Keeps the whole simulation as one JSON document in an SQLite row.

    Every load reads the full document and every save overwrites it, so a
    caller always works on a private copy.
    """

    def __init__(
        self,
        path: str,
        key: str = "simulation",
        light_ids: Iterable[int] = range(1, 7),
        default_temperature: float = 22.0,
        default_humidity: float = 50.0,
    ) -> None:
        self._path = path
        self._key = key
        self._light_ids = tuple(light_ids)
        self._default_temperature = default_temperature
        self._default_humidity = default_humidity

    def default_state(self) -> SimulationState:
        return SimulationState.default(
            light_ids=self._light_ids,
            temperature=self._default_temperature,
            humidity=self._default_humidity,
        )

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    key TEXT PRIMARY KEY,
                    body TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            await db.commit()

    async def load_raw(self) -> str | None:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute("SELECT body FROM documents WHERE key = ?", (self._key,))
            row = await cur.fetchone()
        return row[0] if row else None

    async def load(self) -> SimulationState:
        body = await self.load_raw()
        if body is None:
            logger.info("No persisted state under key=%s, seeding defaults", self._key)
            return self.default_state()

        try:
            state = SimulationState.from_dict(json.loads(body))
        except (ValueError, MalformedStateError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Corrupt persisted state under key=%s, falling back to defaults: %s", self._key, e)
            return self.default_state()

        for lid in self._light_ids:
            if lid not in state.lights:
                logger.warning("Persisted state lacks light %s, adding it switched off", lid)
                state.lights[lid] = self.default_state().lights[lid]
        for lid in sorted(set(state.lights) - set(self._light_ids)):
            logger.warning("Persisted state has unknown light %s, dropping it", lid)
            del state.lights[lid]
        return state

    async def save(self, state: SimulationState) -> None:
        await self.save_raw(json.dumps(state.to_dict()))

    async def save_raw(self, body: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO documents(key, body, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET body=excluded.body, updated_at=excluded.updated_at",
                (self._key, body, now),
            )
            await db.commit()
