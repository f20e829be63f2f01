"""
Configuration for the perception loop.
"""
from pydantic import BaseModel
import os

# Face detector backends DeepFace.extract_faces accepts without extra model downloads
SUPPORTED_BACKENDS = ("opencv", "ssd", "mtcnn", "retinaface", "mediapipe", "yunet", "centerface")


def _env_flag(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    SAMPLE_INTERVAL: float = float(os.getenv("SAMPLE_INTERVAL", "1.0"))
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    FRAME_WIDTH: int = int(os.getenv("FRAME_WIDTH", "640"))
    FRAME_HEIGHT: int = int(os.getenv("FRAME_HEIGHT", "480"))
    READ_FAILURE_LIMIT: int = int(os.getenv("READ_FAILURE_LIMIT", "30"))

    DETECTOR_BACKEND: str = (os.getenv("DETECTOR_BACKEND", "opencv") or "opencv")
    DETECTOR_WARMUP: bool = _env_flag("DETECTOR_WARMUP", True)
    MIN_FACE_BOX: int = int(os.getenv("MIN_FACE_BOX", "40"))
    MIN_DETECTION_CONFIDENCE: float = float(os.getenv("MIN_DETECTION_CONFIDENCE", "0.5"))

    LABEL_SEED: int | None = (
        int(os.getenv("LABEL_SEED")) if os.getenv("LABEL_SEED") else None
    )
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize DETECTOR_BACKEND: strip comments/extra words, lower-case, validate
        backend = (self.DETECTOR_BACKEND or "opencv").strip().split()[0].lower()
        if backend not in SUPPORTED_BACKENDS:
            backend = "opencv"
        object.__setattr__(self, "DETECTOR_BACKEND", backend)
        object.__setattr__(self, "SAMPLE_INTERVAL", max(0.05, float(self.SAMPLE_INTERVAL)))
        object.__setattr__(self, "READ_FAILURE_LIMIT", max(1, int(self.READ_FAILURE_LIMIT)))
        object.__setattr__(self, "LOG_LEVEL", (self.LOG_LEVEL or "INFO").strip().upper())
