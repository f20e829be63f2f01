"""
Face detection capability and its asynchronous loader.

The detector is DeepFace (imported lazily so tests can monkeypatch
sys.modules['deepface'] and so the TF stack is not pulled in at import time).
"""
# core/capability.py
from __future__ import annotations
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence
import asyncio
import logging

import numpy as np

from core.config import Settings
from core.models import DetectedRegion
from core.state import ObservableState

logger = logging.getLogger(__name__)


class CapabilityLoadError(RuntimeError):
    """The detection capability could not be constructed."""


class DetectionCapability(Protocol):
    async def estimate(self, frame: np.ndarray) -> Sequence[DetectedRegion]:
        ...


CapabilityFactory = Callable[[], Awaitable[DetectionCapability]]


class DeepFaceDetector:
    """Face detection via DeepFace.extract_faces, run off the event loop."""
    def __init__(self, deepface, backend: str = "opencv", min_box: int = 40, min_confidence: float = 0.5):
        self._df = deepface
        self.backend = backend
        self.min_box = int(min_box)
        self.min_confidence = float(min_confidence)

    async def estimate(self, frame: np.ndarray) -> List[DetectedRegion]:
        return await asyncio.to_thread(self.detect, frame)

    def detect(self, frame: np.ndarray) -> List[DetectedRegion]:
        dets = self._df.extract_faces(
            img_path=frame,
            detector_backend=self.backend,
            enforce_detection=False,
            align=True,
        )
        regions: List[DetectedRegion] = []
        for d in dets or []:
            region = self._to_region(d)
            if region is not None:
                regions.append(region)
        logger.debug(f"[detector] faces_detected={len(regions)} raw={len(dets or [])}")
        return regions

    def _to_region(self, det) -> Optional[DetectedRegion]:
        fa = (det or {}).get("facial_area") or {}
        w = int(fa.get("w", 0)); h = int(fa.get("h", 0))
        if w < self.min_box or h < self.min_box:
            return None
        # With enforce_detection=False DeepFace returns the whole frame at confidence 0
        conf = det.get("confidence", 1.0)
        try:
            conf = float(conf)
        except (TypeError, ValueError):
            conf = 1.0
        if conf < self.min_confidence:
            return None
        return DetectedRegion(x=int(fa.get("x", 0)), y=int(fa.get("y", 0)), w=w, h=h, confidence=conf)


def _import_deepface():
    from deepface import DeepFace
    return DeepFace


async def load_deepface_detector(settings: Settings) -> DeepFaceDetector:
    """Import DeepFace and (optionally) build the detector model with a blank frame."""
    logger.debug(f"[loader] importing deepface backend={settings.DETECTOR_BACKEND}")
    deepface = await asyncio.to_thread(_import_deepface)
    detector = DeepFaceDetector(
        deepface,
        backend=settings.DETECTOR_BACKEND,
        min_box=settings.MIN_FACE_BOX,
        min_confidence=settings.MIN_DETECTION_CONFIDENCE,
    )
    if settings.DETECTOR_WARMUP:
        blank = np.zeros((settings.FRAME_HEIGHT, settings.FRAME_WIDTH, 3), dtype=np.uint8)
        await detector.estimate(blank)
    return detector


class CapabilityLoader:
    """
    Owns the current detection capability.

    Every load() takes a new generation number. A resolution is only applied
    if its generation is still the newest requested; older ones are dropped,
    so two reloads racing each other always end with the later request's
    capability. The previous capability stays current until a newer one
    resolves successfully.
    """
    def __init__(self, factory: CapabilityFactory, state: ObservableState):
        self._factory = factory
        self._state = state
        self.capability: Optional[DetectionCapability] = None
        self.generation = 0
        self._pending: set[asyncio.Task] = set()

    @property
    def ready(self) -> bool:
        return self.capability is not None

    async def load(self) -> Optional[DetectionCapability]:
        """
        Build a capability and publish it.

        Returns the capability, or None if a newer load superseded this one.
        Raises CapabilityLoadError if this (newest) load failed.
        """
        self.generation += 1
        gen = self.generation
        self._state.set_loading(True, "loading")
        logger.info(f"[loader] loading capability generation={gen}")
        try:
            capability = await self._factory()
        except Exception as e:
            if gen != self.generation:
                logger.warning(f"[loader] stale generation={gen} failed: {e!r} (ignored)")
                return None
            logger.exception(f"[loader] generation={gen} failed")
            self._state.set_loading(False, "failed", error=str(e) or type(e).__name__)
            raise CapabilityLoadError(f"Detector failed to load: {e}") from e

        if gen != self.generation:
            logger.info(f"[loader] discarding stale generation={gen} (current={self.generation})")
            return None
        self.capability = capability
        self._state.set_loading(False, "ready")
        logger.info(f"[loader] capability ready generation={gen}")
        return capability

    def request_reload(self) -> asyncio.Task:
        """Start a load in the background; failures end up in the state, not the caller."""
        task = asyncio.create_task(self._load_quietly())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _load_quietly(self) -> Optional[DetectionCapability]:
        try:
            return await self.load()
        except CapabilityLoadError:
            # already logged and published as load_state="failed"
            return None
