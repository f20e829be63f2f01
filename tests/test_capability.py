import asyncio, sys, types
import numpy as np
import pytest

from core.capability import (
    CapabilityLoader, CapabilityLoadError, DeepFaceDetector, load_deepface_detector,
)
from core.config import Settings
from core.state import ObservableState


class Cap:
    def __init__(self, name):
        self.name = name
    async def estimate(self, frame):
        return []


def test_load_publishes_capability():
    async def scenario():
        state = ObservableState()
        async def factory():
            return Cap("a")
        loader = CapabilityLoader(factory, state)
        assert state.loading and not loader.ready
        cap = await loader.load()
        assert cap.name == "a"
        assert loader.ready and loader.capability is cap
        assert state.loading is False
        assert state.load_state == "ready"
    asyncio.run(scenario())


def test_load_failure_is_observable_and_recoverable():
    async def scenario():
        state = ObservableState()
        attempts = {"n": 0}
        async def factory():
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise OSError("no weights")
            return Cap("b")
        loader = CapabilityLoader(factory, state)
        with pytest.raises(CapabilityLoadError):
            await loader.load()
        assert state.loading is False
        assert state.load_state == "failed"
        assert "no weights" in state.load_error
        assert not loader.ready

        # explicit reload recovers
        await loader.request_reload()
        assert loader.ready and loader.capability.name == "b"
        assert state.load_state == "ready" and state.load_error is None
    asyncio.run(scenario())


def test_reload_failure_does_not_raise_into_caller():
    async def scenario():
        state = ObservableState()
        async def factory():
            raise RuntimeError("bad")
        loader = CapabilityLoader(factory, state)
        result = await loader.request_reload()
        assert result is None
        assert state.load_state == "failed"
    asyncio.run(scenario())


def test_later_reload_wins_when_earlier_resolves_last():
    async def scenario():
        state = ObservableState()
        gates = {}
        order = iter(["A", "B"])
        async def factory():
            name = next(order)
            gates[name] = asyncio.Event()
            await gates[name].wait()
            return Cap(name)
        loader = CapabilityLoader(factory, state)
        task_a = loader.request_reload()
        await asyncio.sleep(0)
        task_b = loader.request_reload()
        await asyncio.sleep(0)
        assert state.loading

        gates["B"].set()
        assert (await task_b).name == "B"
        assert state.loading is False

        gates["A"].set()
        assert await task_a is None
        assert loader.capability.name == "B"
        assert loader.generation == 2
        assert state.load_state == "ready"
    asyncio.run(scenario())


def test_previous_capability_serves_during_reload():
    async def scenario():
        state = ObservableState()
        names = iter(["first", "second"])
        hold = asyncio.Event()
        async def factory():
            name = next(names)
            if name == "second":
                await hold.wait()
            return Cap(name)
        loader = CapabilityLoader(factory, state)
        await loader.load()
        task = loader.request_reload()
        await asyncio.sleep(0)
        assert state.loading
        assert loader.capability.name == "first"
        hold.set()
        await task
        assert loader.capability.name == "second"
    asyncio.run(scenario())


class DummyDeepFace:
    calls = []
    @staticmethod
    def extract_faces(img_path=None, detector_backend=None, enforce_detection=None, align=None):
        DummyDeepFace.calls.append(detector_backend)
        return [
            {"facial_area": {"x": 10, "y": 10, "w": 60, "h": 60}, "confidence": 0.97},
            {"facial_area": {"x": 0, "y": 0, "w": 64, "h": 48}, "confidence": 0},   # whole-frame fallback
            {"facial_area": {"x": 5, "y": 5, "w": 12, "h": 12}, "confidence": 0.9},  # too small
        ]


def test_deepface_detector_filters_regions():
    async def scenario():
        det = DeepFaceDetector(DummyDeepFace, backend="opencv", min_box=40, min_confidence=0.5)
        regions = await det.estimate(np.zeros((48, 64, 3), dtype=np.uint8))
        assert len(regions) == 1
        assert (regions[0].x, regions[0].w, regions[0].confidence) == (10, 60, 0.97)
    asyncio.run(scenario())


def test_load_deepface_detector_with_fake_module(monkeypatch):
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=DummyDeepFace))
    DummyDeepFace.calls = []
    s = Settings(DETECTOR_BACKEND="mtcnn", DETECTOR_WARMUP=True, FRAME_WIDTH=32, FRAME_HEIGHT=24)
    det = asyncio.run(load_deepface_detector(s))
    assert isinstance(det, DeepFaceDetector)
    assert det.backend == "mtcnn"
    # warm-up ran one detection on a blank frame
    assert DummyDeepFace.calls == ["mtcnn"]
