"""
Frame source (webcam) and its readiness gate.
"""
from __future__ import annotations
from typing import Optional, Protocol, Tuple
import asyncio
import logging

import cv2
import numpy as np

from core.state import ObservableState

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def snapshot(self) -> Optional[np.ndarray]:
        ...


def frame_size(frame: Optional[np.ndarray]) -> Tuple[int, int]:
    """(width, height) of a frame; (0, 0) when there is nothing to decode."""
    if frame is None or getattr(frame, "ndim", 0) < 2:
        return 0, 0
    h, w = frame.shape[:2]
    return int(w), int(h)


class SourceReadinessGate:
    """Flips to ready on the first frame with non-zero width and height."""
    def __init__(self, state: ObservableState):
        self._state = state
        self.ready = False

    def observe(self, frame: Optional[np.ndarray]) -> bool:
        if self.ready:
            return True
        w, h = frame_size(frame)
        if w > 0 and h > 0:
            self.ready = True
            logger.info(f"[source] first frame ready {w}x{h}")
            self._state.set_source_ready(True)
        return self.ready

    def reset(self):
        """Source went away; the next good frame re-arms readiness."""
        if not self.ready:
            return
        self.ready = False
        logger.warning("[source] source lost; readiness reset")
        self._state.set_source_ready(False)


class CameraSource:
    """
    OpenCV webcam pumped in the background; keeps only the latest frame.
    """
    def __init__(self, gate: SourceReadinessGate, camera_index: int = 0,
                 frame_size: Tuple[int, int] = (640, 480), read_failure_limit: int = 30):
        self.gate = gate
        self.camera_index = camera_index
        self.frame_size = frame_size
        self.read_failure_limit = max(1, int(read_failure_limit))
        self._cap = None
        self._latest: Optional[np.ndarray] = None
        self._pump: Optional[asyncio.Task] = None
        self._read: Optional[asyncio.Future] = None
        self._running = False

    async def start(self):
        if self._pump is not None:
            return
        cap = await asyncio.to_thread(cv2.VideoCapture, self.camera_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open camera index {self.camera_index}")
        width, height = self.frame_size
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self._cap = cap
        self._running = True
        self._pump = asyncio.create_task(self._pump_frames())
        logger.debug(f"[source] camera {self.camera_index} opened")

    async def stop(self):
        self._running = False
        pump, self._pump = self._pump, None
        if pump is not None:
            # release must not overlap a read still running in the worker thread
            read = self._read
            if read is not None and not read.done():
                await asyncio.wait([read])
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass
        self._read = None
        cap, self._cap = self._cap, None
        if cap is not None:
            await asyncio.to_thread(cap.release)
        self._latest = None

    def snapshot(self) -> Optional[np.ndarray]:
        return self._latest

    async def _pump_frames(self):
        failures = 0
        while self._running:
            self._read = asyncio.ensure_future(asyncio.to_thread(self._cap.read))
            ok, frame = await asyncio.shield(self._read)
            if not self._running:
                break
            if not ok or frame is None:
                failures += 1
                if failures == self.read_failure_limit:
                    self._latest = None
                    self.gate.reset()
                await asyncio.sleep(0.1)
                continue
            failures = 0
            self._latest = frame
            self.gate.observe(frame)
            await asyncio.sleep(0)
