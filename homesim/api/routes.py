from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from ..core.config import settings
from ..core.timeutil import now_ms
from ..domain.errors import NotFoundError
from ..domain.models import SimulationState, event_to_dict
from ..drivers.actuators_sim import LightController
from ..services.motion import MotionBurstScheduler
from ..services.ticker import TickDriver
from ..storage.serialized import SerializedStore
from .schemas import UpdateLightRequest

logger = logging.getLogger(__name__)

router = APIRouter()

BANNER = (
    "Smart home simulator is running. Routes: /current (current values), "
    "/history (history), /generate (force a tick), "
    "/update-light (POST {\"lightId\": \"1\", \"state\": true}), /status (scheduler)"
)


# --- Dependency getters (imported from main via circular-safe approach) ---
# We define them here as callables that main.py will set via app.dependency_overrides.
def get_store() -> SerializedStore:  # overridden in main
    raise RuntimeError("Store dependency not configured")

def get_ticker() -> TickDriver:  # overridden in main
    raise RuntimeError("Tick driver dependency not configured")

def get_lights() -> LightController:  # overridden in main
    raise RuntimeError("Light controller dependency not configured")

def get_motion() -> MotionBurstScheduler:  # overridden in main
    raise RuntimeError("Motion scheduler dependency not configured")


def _history_json(state: SimulationState) -> dict:
    out: dict = {
        "lights": {
            str(lid): [event_to_dict(e) for e in light.history]
            for lid, light in sorted(state.lights.items())
        },
    }
    for name, sensor in state.binary_sensors().items():
        out[name] = [event_to_dict(e) for e in sensor.history]
    out["temperature"] = [event_to_dict(e) for e in state.temperature.history]
    out["humidity"] = [event_to_dict(e) for e in state.humidity.history]
    return out


@router.get("/", response_class=PlainTextResponse)
async def banner():
    return BANNER


@router.get("/current")
async def current(store: SerializedStore = Depends(get_store)):
    state = await store.read()
    out: dict = {"lights": {str(lid): light.state for lid, light in sorted(state.lights.items())}}
    for name, sensor in state.binary_sensors().items():
        out[name] = sensor.state
    out["temperature"] = state.temperature.current
    out["humidity"] = state.humidity.current
    return out


@router.get("/history")
async def history(store: SerializedStore = Depends(get_store)):
    return _history_json(await store.read())


@router.post("/generate")
async def generate(ticker: TickDriver = Depends(get_ticker)):
    state = await ticker.tick()
    return state.to_dict()


@router.post("/update-light")
async def update_light(
    req: UpdateLightRequest,
    store: SerializedStore = Depends(get_store),
    lights: LightController = Depends(get_lights),
):
    result: dict = {}

    def apply(state: SimulationState) -> bool:
        changed, light = lights.set_light(state, req.lightId, req.state, now_ms())
        result["history"] = [event_to_dict(e) for e in light.history]
        return changed

    try:
        await store.mutate(apply)
    except NotFoundError as e:
        return JSONResponse(status_code=404, content={"error": str(e)})
    except Exception as e:
        logger.exception("Failed to update light %s: %s", req.lightId, e)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return {
        "success": True,
        "lightId": req.lightId,
        "newState": req.state,
        "history": result["history"],
    }


@router.get("/status")
async def status(
    ticker: TickDriver = Depends(get_ticker),
    motion: MotionBurstScheduler = Depends(get_motion),
):
    last = ticker.stats.last_tick_utc
    return {
        "app": settings.app_name,
        "tickSeconds": settings.tick_seconds,
        "ticks": ticker.stats.ticks,
        "lastTickUtc": last.isoformat() if last else None,
        "lastError": ticker.stats.last_error,
        "motion": motion.status(),
    }
