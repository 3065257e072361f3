import asyncio
import os
import tempfile
import time

import numpy as np
import pytest

os.environ.setdefault("LIVENESS_LOG_DIR", tempfile.mkdtemp(prefix="liveness-logs-"))

from face_liveness.config import DESCRIPTOR_DIM  # noqa: E402
from face_liveness.exceptions import CameraError  # noqa: E402
from face_liveness.types import FacialLandmarks  # noqa: E402

EYE_WIDTH = 30.0


def _eye(x0: float, y0: float, ear: float) -> list[tuple[float, float]]:
    half = ear * EYE_WIDTH / 2.0
    third = EYE_WIDTH / 3.0
    return [
        (x0, y0),
        (x0 + third, y0 - half),
        (x0 + 2 * third, y0 - half),
        (x0 + EYE_WIDTH, y0),
        (x0 + 2 * third, y0 + half),
        (x0 + third, y0 + half),
    ]


def make_landmarks(ear: float = 0.30, nose: tuple[float, float] = (100.0, 100.0)) -> FacialLandmarks:
    nx, ny = nose
    points = [(nx, ny)] * 68
    points[36:42] = _eye(nx - 45.0, ny - 30.0, ear)
    points[42:48] = _eye(nx + 15.0, ny - 30.0, ear)
    return FacialLandmarks(points)


def make_descriptor(seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    vector = rng.normal(size=DESCRIPTOR_DIM).astype(np.float32)
    return vector / np.linalg.norm(vector)


class ScriptedDetector:
    """Returns scripted detections keyed by frame, or in call order."""

    def __init__(self, detections=None, descriptors=None, default=None):
        self.detections = detections if detections is not None else {}
        self.descriptors = list(descriptors) if descriptors is not None else []
        self.default = default
        self.detect_calls = 0
        self.descriptor_calls = 0

    async def detect_face(self, frame):
        self.detect_calls += 1
        await asyncio.sleep(0)
        outcome = self.detections.get(frame, self.default)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def extract_descriptor(self, frame):
        self.descriptor_calls += 1
        await asyncio.sleep(0)
        if not self.descriptors:
            return None
        outcome = self.descriptors.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeFrameSource:
    def __init__(self, fail_open: bool = False, fail_read_after: int | None = None):
        self.fail_open = fail_open
        self.fail_read_after = fail_read_after
        self.open_count = 0
        self.close_count = 0
        self.reads = 0

    def open(self) -> None:
        self.open_count += 1
        if self.fail_open:
            raise CameraError("Camera permission denied.")

    def read(self):
        if self.fail_read_after is not None and self.reads >= self.fail_read_after:
            raise CameraError("Failed to read frame from camera.")
        self.reads += 1
        return self.reads

    def close(self) -> None:
        self.close_count += 1


class StepClock:
    def __init__(self, step: float = 0.25, start: float = 0.0):
        self.step = step
        self.now = start

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def frame_source():
    return FakeFrameSource()


class SlowFrameSource(FakeFrameSource):
    """Blocks in open/read the way a real capture device can."""

    def __init__(self, open_delay: float = 0.0, read_delay: float = 0.0):
        super().__init__()
        self.open_delay = open_delay
        self.read_delay = read_delay
        self.handle = None
        self.reading = False
        self.close_during_read = False

    def open(self) -> None:
        time.sleep(self.open_delay)
        super().open()
        self.handle = object()

    def read(self):
        self.reading = True
        try:
            time.sleep(self.read_delay)
            return super().read()
        finally:
            self.reading = False

    def close(self) -> None:
        if self.reading:
            self.close_during_read = True
        self.handle = None
        super().close()
