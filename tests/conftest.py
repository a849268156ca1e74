import threading
import time

import numpy as np
import pytest

from core.events import Frame, Observation, ObservationSet


def make_frame(sequence: int = 0, width: int = 64, height: int = 48) -> Frame:
    return Frame(image=np.zeros((height, width, 3), dtype=np.uint8), sequence=sequence, source="test")


class RecordingBackend:
    """Inference backend that records every frame it is asked to analyze."""

    def __init__(self, observations=None, fail_on=(), delay: float = 0.0):
        self.observations = observations or [Observation("bag", 0.95, (0.4, 0.4, 0.2, 0.2))]
        self.fail_on = set(fail_on)
        self.delay = delay
        self.calls = []
        self.scalings = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def infer(self, frame, scaling):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append(frame.sequence)
            self.scalings.append(scaling)
        try:
            if self.delay:
                time.sleep(self.delay)
            if frame.sequence in self.fail_on:
                raise RuntimeError(f"backend exploded on #{frame.sequence}")
            return ObservationSet.for_frame(frame, self.observations)
        finally:
            with self._lock:
                self.active -= 1


class FakeSource:
    """FrameSource that yields a fixed number of frames, then None."""

    def __init__(self, frames=3, start_ok=True, shape=(48, 64, 3)):
        self.remaining = frames
        self.start_ok = start_ok
        self.shape = shape
        self.starts = 0
        self.stops = 0

    def start(self):
        self.starts += 1
        return self.start_ok

    def read_frame(self):
        if self.remaining <= 0:
            return None
        self.remaining -= 1
        return np.zeros(self.shape, dtype=np.uint8)

    def stop(self):
        self.stops += 1


class CollectingSink:
    def __init__(self):
        self.frames = []

    def submit(self, frame):
        self.frames.append(frame)


@pytest.fixture
def frame_factory():
    return make_frame


@pytest.fixture
def backend():
    return RecordingBackend()
