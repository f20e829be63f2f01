# core/live.py
"""
Live (real-time) perception loop.

Wires the pieces together for one camera:
- CapabilityLoader loads the DeepFace detector in the background
- CameraSource pumps webcam frames and flips the readiness gate on the first one
- SamplingScheduler samples a frame every SAMPLE_INTERVAL seconds and maps
  detections to a label through RandomLabelMapper
- ObservableState holds what presentation reads (loading / source_ready / label)

This module also provides a live overlay window (run_live_overlay) that draws
the mirrored camera frame with the current label.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

import cv2

from core.capability import CapabilityFactory, CapabilityLoader, load_deepface_detector
from core.config import Settings
from core.mapper import RandomLabelMapper
from core.models import LoopStatus
from core.scheduler import SamplingScheduler
from core.source import CameraSource, FrameSource, SourceReadinessGate
from core.state import ObservableState
from core.visual import draw_status

logger = logging.getLogger(__name__)


class PerceptionLoop:
    """Camera -> detector -> label loop with explicit lifecycle."""
    def __init__(self, settings: Settings,
                 factory: Optional[CapabilityFactory] = None,
                 source: Optional[FrameSource] = None,
                 mapper: Optional[RandomLabelMapper] = None):
        self.s = settings
        self.state = ObservableState()
        self.gate = SourceReadinessGate(self.state)
        if factory is None:
            factory = lambda: load_deepface_detector(settings)  # noqa: E731
        self.loader = CapabilityLoader(factory, self.state)
        if source is None:
            source = CameraSource(
                self.gate,
                camera_index=settings.CAMERA_INDEX,
                frame_size=(settings.FRAME_WIDTH, settings.FRAME_HEIGHT),
                read_failure_limit=settings.READ_FAILURE_LIMIT,
            )
        self.source = source
        if mapper is None:
            mapper = RandomLabelMapper(rng=random.Random(settings.LABEL_SEED))
        self.scheduler = SamplingScheduler(
            self.loader, self.gate, self.source, mapper, self.state,
            interval=settings.SAMPLE_INTERVAL,
        )
        self._load_task: Optional[asyncio.Task] = None

    # ---- lifecycle ----
    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def start(self):
        """Kick off the detector load, open the source and start sampling."""
        if self.running:
            return
        if self.loader.generation == 0:
            self._load_task = self.loader.request_reload()
        start = getattr(self.source, "start", None)
        if start is not None:
            await start()
        self.scheduler.start()
        logger.info(f"[live] started interval={self.s.SAMPLE_INTERVAL}s")

    async def stop(self):
        await self.scheduler.stop()
        stop = getattr(self.source, "stop", None)
        if stop is not None:
            await stop()
        logger.info("[live] stopped")

    def request_reload(self) -> asyncio.Task:
        return self.loader.request_reload()

    def status(self) -> LoopStatus:
        snap = self.state.snapshot()
        return LoopStatus(
            **snap.model_dump(),
            running=self.running,
            generation=self.loader.generation,
            ticks=self.scheduler.ticks,
            estimations=self.scheduler.estimations,
            failures=self.scheduler.failures,
            skipped=self.scheduler.skipped,
        )


# -----------------------------------------------------------------------------
# Live camera overlay
# -----------------------------------------------------------------------------
WINDOW_NAME = "Emotion Recognition (q to quit, r to reload)"


async def _overlay(loop: PerceptionLoop, mirrored: bool, max_frames: Optional[int]):
    await loop.start()
    shown = 0
    try:
        while max_frames is None or shown < max_frames:
            frame = loop.source.snapshot() if loop.state.source_ready else None
            if frame is not None and mirrored:
                frame = cv2.flip(frame, 1)
            annotated = draw_status(frame, loop.state.snapshot(), size=(loop.s.FRAME_WIDTH, loop.s.FRAME_HEIGHT))
            cv2.imshow(WINDOW_NAME, annotated)
            shown += 1
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                logger.info("[live] reload requested from overlay")
                loop.request_reload()
            await asyncio.sleep(0.03)
    finally:
        await loop.stop()
        cv2.destroyAllWindows()


def run_live_overlay(settings: Settings, camera_index: Optional[int] = None,
                     loop: Optional[PerceptionLoop] = None,
                     mirrored: bool = True, max_frames: Optional[int] = None) -> LoopStatus:
    """
    Open the webcam window and run the perception loop until 'q' is pressed.

    Returns the final loop status.
    """
    if camera_index is not None:
        settings = settings.model_copy(update={"CAMERA_INDEX": camera_index})
    if loop is None:
        loop = PerceptionLoop(settings)
    asyncio.run(_overlay(loop, mirrored, max_frames))
    return loop.status()
