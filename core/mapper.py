"""
Detection result -> label mapping.

RandomLabelMapper is a placeholder for a real expression classifier: it only
looks at whether any face was found. A classifier can replace it as long as it
keeps the same `map(regions, current)` signature.
"""
from __future__ import annotations
from typing import Optional, Sequence
import random

from core.models import EMOTIONS, DetectedRegion


class RandomLabelMapper:
    def __init__(self, vocabulary: Sequence[str] = EMOTIONS, rng: Optional[random.Random] = None):
        vocabulary = tuple(vocabulary)
        if not vocabulary:
            raise ValueError("label vocabulary must not be empty")
        unknown = [v for v in vocabulary if v not in EMOTIONS]
        if unknown:
            raise ValueError(f"unknown labels: {unknown}")
        self.vocabulary = vocabulary
        self.rng = rng or random.Random()

    def map(self, regions: Sequence[DetectedRegion], current: str) -> str:
        """Pick a label when at least one region was detected, else keep `current`."""
        return self.map_detection(len(regions) > 0, current)

    def map_detection(self, has_detection: bool, current: str) -> str:
        if not has_detection:
            return current
        return self.rng.choice(self.vocabulary)
