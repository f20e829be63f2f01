"""
REST endpoints for the live perception loop.
"""
from fastapi import APIRouter, HTTPException
import logging

from core.config import Settings
from core.live import PerceptionLoop
from core.models import LoopStatus

router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)

# one loop per process; created on first start
live_session: dict = {"loop": None}


def make_loop(s: Settings) -> PerceptionLoop:
    return PerceptionLoop(s)


def _get_loop() -> PerceptionLoop:
    loop = live_session["loop"]
    if loop is None:
        loop = make_loop(settings)
        live_session["loop"] = loop
    return loop


@router.post("/live/start")
async def live_start():
    """
    Start sampling the camera. The detector loads in the background; poll
    /live/status for `loading` / `load_state`.
    """
    loop = _get_loop()
    if loop.running:
        return {"status": "already_running"}
    try:
        await loop.start()
    except RuntimeError as e:
        logger.exception("[api] live start failed")
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "started"}


@router.get("/live/status", response_model=LoopStatus)
async def live_status():
    loop = live_session["loop"]
    if loop is None:
        return LoopStatus(loading=False, load_state="idle")
    return loop.status()


@router.post("/live/stop")
async def live_stop():
    loop = live_session["loop"]
    if loop is None or not loop.running:
        return {"status": "not_running"}
    await loop.stop()
    return {"status": "stopped"}


@router.post("/live/reload")
async def live_reload():
    """Reload the detector; the current one keeps serving until the new one is ready."""
    loop = _get_loop()
    loop.request_reload()
    logger.debug(f"[api] reload requested generation={loop.loader.generation + 1}")
    return {"status": "reloading"}
