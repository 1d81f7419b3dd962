from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.log import configure_logging

from .api.routes import router as api_router
import homesim.api.routes as routes_module

from .drivers.actuators_sim import LightController
from .drivers.sensors_sim import AmbientDrift, DriftRange
from .services.motion import BurstTiming, MotionBurstScheduler
from .services.ticker import TickDriver
from .storage.serialized import SerializedStore
from .storage.sqlite_store import SQLiteStateStore


logger = logging.getLogger(__name__)

IDENTIFYING_HEADERS = ("server", "x-powered-by")


# --- Singletons (built in lifespan so settings can be adjusted before startup) ---
store: SerializedStore | None = None
ticker: TickDriver | None = None
motion: MotionBurstScheduler | None = None
lights = LightController(max_history_entries=settings.max_history_entries)


def build_services() -> tuple[SQLiteStateStore, SerializedStore, MotionBurstScheduler, TickDriver]:
    sqlite_store = SQLiteStateStore(
        settings.sqlite_path,
        key=settings.state_key,
        light_ids=range(1, settings.light_count + 1),
        default_temperature=settings.default_temperature,
        default_humidity=settings.default_humidity,
    )
    serialized = SerializedStore(sqlite_store)
    scheduler = MotionBurstScheduler(
        serialized,
        timing=BurstTiming(
            arm_min_s=settings.motion_arm_min_s,
            arm_max_s=settings.motion_arm_max_s,
            active_min_s=settings.motion_active_min_s,
            active_max_s=settings.motion_active_max_s,
        ),
        max_history_entries=settings.max_history_entries,
    )
    drift = AmbientDrift(
        temperature=DriftRange(settings.temperature_step, settings.temperature_min, settings.temperature_max),
        humidity=DriftRange(settings.humidity_step, settings.humidity_min, settings.humidity_max),
        max_history_entries=settings.max_history_entries,
    )
    driver = TickDriver(serialized, drift, scheduler, tick_seconds=settings.tick_seconds)
    return sqlite_store, serialized, scheduler, driver


def get_store() -> SerializedStore:
    assert store is not None
    return store


def get_ticker() -> TickDriver:
    assert ticker is not None
    return ticker


def get_motion() -> MotionBurstScheduler:
    assert motion is not None
    return motion


def get_lights() -> LightController:
    return lights


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Starting %s (db=%s)", settings.app_name, settings.sqlite_path)

    global store, ticker, motion, lights
    backend, store, motion, ticker = build_services()
    lights = LightController(max_history_entries=settings.max_history_entries)

    await backend.init()
    await ticker.start()

    try:
        yield
    finally:
        if ticker:
            await ticker.stop()

        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def strip_identifying_headers(request: Request, call_next):
    response = await call_next(request)
    for name in IDENTIFYING_HEADERS:
        if name in response.headers:
            del response.headers[name]
    return response


# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_store] = get_store
app.dependency_overrides[routes_module.get_ticker] = get_ticker
app.dependency_overrides[routes_module.get_lights] = get_lights
app.dependency_overrides[routes_module.get_motion] = get_motion

app.include_router(api_router)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, server_header=False)
