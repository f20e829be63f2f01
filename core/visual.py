"""Visualization helpers for the live window.

- draw_status: draw the current label (coloured per label) or the loader status on a frame

Pure OpenCV drawing; reads loop state, never writes it.
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import Dict, Optional, Tuple

from core.models import StateSnapshot

# BGR
LABEL_COLORS: Dict[str, Tuple[int, int, int]] = {
    "happy": (94, 197, 34),       # green
    "sad": (246, 130, 59),        # blue
    "angry": (68, 68, 239),       # red
    "surprised": (8, 179, 234),   # yellow
    "disgusted": (247, 85, 168),  # purple
    "fearful": (22, 115, 249),    # orange
}
DEFAULT_COLOR: Tuple[int, int, int] = (81, 65, 55)  # gray


def label_color(label: Optional[str]) -> Tuple[int, int, int]:
    return LABEL_COLORS.get(label or "", DEFAULT_COLOR)


def draw_status(frame: Optional[np.ndarray],
                status: StateSnapshot,
                size: Tuple[int, int] = (640, 480)) -> np.ndarray:
    """Draw loader status and the detected label on a copy of `frame`.

    Args:
        frame: BGR image, or None before the camera produced anything
        status: state snapshot to render
        size: (width, height) of the blank canvas used when frame is None

    Returns:
        Annotated copy of the frame
    """
    if frame is None:
        w, h = size
        out = np.full((h, w, 3), 245, dtype=np.uint8)
    else:
        out = frame.copy()
    h, w = out.shape[:2]

    if status.load_state == "failed":
        msg = "Detector failed - press r to reload"
        cv2.putText(out, msg, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 255), 2, cv2.LINE_AA)
    elif status.loading:
        cv2.putText(out, "Loading...", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.9, (201, 40, 147), 2, cv2.LINE_AA)

    if not status.source_ready:
        cv2.putText(out, "Waiting for camera", (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 0.6, DEFAULT_COLOR, 1, cv2.LINE_AA)

    label = status.label.capitalize()
    color = label_color(status.label)
    cv2.putText(out, "Detected Emotion", (10, max(0, h - 50)), cv2.FONT_HERSHEY_SIMPLEX, 0.6, DEFAULT_COLOR, 1, cv2.LINE_AA)
    cv2.putText(out, label, (10, max(0, h - 15)), cv2.FONT_HERSHEY_SIMPLEX, 1.1, color, 2, cv2.LINE_AA)
    cv2.circle(out, (min(w - 1, 30 + 22 * len(label)), max(0, h - 25)), 6, color, -1)
    return out
