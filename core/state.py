"""
Observable loop state: the single place presentation reads from.
"""
from __future__ import annotations
from typing import Callable, List, Optional
import logging

from core.models import EMOTIONS, NEUTRAL_LABEL, LoadState, StateSnapshot

logger = logging.getLogger(__name__)

Listener = Callable[[StateSnapshot], None]


class ObservableState:
    """
    Current label, loading flag and source readiness for one perception loop.

    Each field has a single writer (loader, gate, mapper via scheduler).
    Readers either poll `snapshot()` or `subscribe()` to change notifications.
    """
    def __init__(self, vocabulary=EMOTIONS, initial_label: str = NEUTRAL_LABEL):
        if initial_label not in vocabulary:
            raise ValueError(f"initial label {initial_label!r} not in vocabulary")
        self.vocabulary = tuple(vocabulary)
        self.loading: bool = True
        self.load_state: LoadState = "loading"
        self.load_error: Optional[str] = None
        self.source_ready: bool = False
        self.label: str = initial_label
        self._listeners: List[Listener] = []

    # ---- writers ----
    def set_loading(self, loading: bool, load_state: LoadState, error: Optional[str] = None):
        changed = (self.loading, self.load_state, self.load_error) != (loading, load_state, error)
        self.loading = loading
        self.load_state = load_state
        self.load_error = error
        if changed:
            self._notify()

    def set_source_ready(self, ready: bool):
        if self.source_ready == ready:
            return
        self.source_ready = ready
        self._notify()

    def set_label(self, label: str):
        if label not in self.vocabulary:
            raise ValueError(f"label {label!r} not in vocabulary {self.vocabulary}")
        if label == self.label:
            return
        self.label = label
        self._notify()

    # ---- readers ----
    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            loading=self.loading,
            source_ready=self.source_ready,
            label=self.label,
            load_state=self.load_state,
            load_error=self.load_error,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def _notify(self):
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("[state] listener failed")
