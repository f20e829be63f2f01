"""
FastAPI application entrypoint.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from api.routes import router, live_session, settings

logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    loop = live_session["loop"]
    if loop is not None and loop.running:
        await loop.stop()


app = FastAPI(title="Live Emotion Recognition API", version="1.0.0", lifespan=lifespan)
app.include_router(router)

@app.get("/health")
def health() -> dict:
    """
    Health check endpoint.

    Returns:
        dict: Simple status payload.
    """
    return {"status": "ok"}
