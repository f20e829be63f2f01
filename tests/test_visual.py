import numpy as np
from core.models import StateSnapshot
from core.visual import draw_status, label_color, LABEL_COLORS, DEFAULT_COLOR

def test_draw_status_cases():
    frame = np.zeros((120, 160, 3), dtype=np.uint8)
    loading = draw_status(frame, StateSnapshot())
    assert loading.shape == frame.shape
    assert frame.sum() == 0  # input untouched
    failed = draw_status(frame, StateSnapshot(loading=False, load_state="failed", load_error="x"))
    assert failed.shape == frame.shape
    ready = draw_status(frame, StateSnapshot(loading=False, load_state="ready", source_ready=True, label="happy"))
    assert ready.sum() > 0

def test_blank_canvas_before_first_frame():
    out = draw_status(None, StateSnapshot(), size=(64, 48))
    assert out.shape == (48, 64, 3)

def test_label_color():
    assert label_color("happy") == LABEL_COLORS["happy"]
    assert label_color("neutral") == DEFAULT_COLOR
