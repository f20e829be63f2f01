"""
CLI to run the perception loop headless -> JSON lines of label changes.
"""
from __future__ import annotations
import argparse, asyncio, json, logging
from core.config import Settings
from core.live import PerceptionLoop


async def run(settings: Settings, seconds: float) -> dict:
    loop = PerceptionLoop(settings)
    unsubscribe = loop.state.subscribe(lambda snap: print(json.dumps(snap.model_dump()), flush=True))
    await loop.start()
    try:
        await asyncio.sleep(seconds)
    finally:
        unsubscribe()
        await loop.stop()
    return loop.status().model_dump()


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--seconds", type=float, default=30.0, help="How long to sample the camera")
    p.add_argument("--camera", type=int, default=None, help="Camera index (overrides CAMERA_INDEX)")
    p.add_argument("--interval", type=float, default=None, help="Seconds between samples")
    args = p.parse_args()

    overrides = {}
    if args.camera is not None:
        overrides["CAMERA_INDEX"] = args.camera
    if args.interval is not None:
        overrides["SAMPLE_INTERVAL"] = args.interval
    settings = Settings(**overrides)
    logging.basicConfig(level=settings.LOG_LEVEL)

    final = asyncio.run(run(settings, args.seconds))
    print(json.dumps(final, indent=2))

if __name__ == "__main__":
    main()
