"""
Pydantic data models shared by the perception loop and the API.
"""
from __future__ import annotations
from pydantic import BaseModel
from typing import Literal, Optional, Tuple

Label = Literal["angry", "disgusted", "fearful", "happy", "neutral", "sad", "surprised"]
# "idle" is only reported for a loop that was never started
LoadState = Literal["idle", "loading", "ready", "failed"]

# Ordered label vocabulary
EMOTIONS: Tuple[str, ...] = ("angry", "disgusted", "fearful", "happy", "neutral", "sad", "surprised")
NEUTRAL_LABEL: str = "neutral"


class DetectedRegion(BaseModel):
    x: int
    y: int
    w: int
    h: int
    confidence: float = 1.0


class StateSnapshot(BaseModel):
    """What presentation reads: the observable part of the loop."""
    loading: bool = True
    source_ready: bool = False
    label: Label = NEUTRAL_LABEL
    load_state: LoadState = "loading"
    load_error: Optional[str] = None


class LoopStatus(StateSnapshot):
    running: bool = False
    generation: int = 0
    ticks: int = 0
    estimations: int = 0
    failures: int = 0
    skipped: int = 0
