from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import numpy as np

from .config import DESCRIPTOR_DIM, LANDMARK_COUNT, RECENT_POSITIONS
from .exceptions import DimensionMismatchError, LandmarkError

LEFT_EYE = slice(36, 42)
RIGHT_EYE = slice(42, 48)
NOSE = slice(27, 36)
NOSE_TIP = 30


@dataclass(frozen=True)
class Point:
    x: float
    y: float


class FacialLandmarks:
    """68 facial landmarks in frame pixel coordinates (iBUG 300-W ordering)."""

    __slots__ = ("_points",)

    def __init__(self, points: Sequence[Sequence[float]] | np.ndarray):
        array = np.array(points, dtype=np.float64)
        if array.shape != (LANDMARK_COUNT, 2):
            raise LandmarkError(
                f"Expected {LANDMARK_COUNT} (x, y) landmarks, got array of shape {array.shape}."
            )
        array.setflags(write=False)
        self._points = array

    @property
    def points(self) -> np.ndarray:
        return self._points

    def left_eye(self) -> np.ndarray:
        return self._points[LEFT_EYE]

    def right_eye(self) -> np.ndarray:
        return self._points[RIGHT_EYE]

    def nose(self) -> np.ndarray:
        return self._points[NOSE]

    def nose_tip(self) -> Point:
        x, y = self._points[NOSE_TIP]
        return Point(float(x), float(y))

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        tip = self.nose_tip()
        return f"FacialLandmarks(nose_tip=({tip.x:.1f}, {tip.y:.1f}))"


def as_descriptor(values: Sequence[float] | np.ndarray, dim: int = DESCRIPTOR_DIM) -> np.ndarray:
    vector = np.array(values, dtype=np.float32).reshape(-1)
    if vector.shape[0] != dim:
        raise DimensionMismatchError(f"Face descriptor must have {dim} values, got {vector.shape[0]}.")
    vector.setflags(write=False)
    return vector


class Direction(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    COMPLETE = "complete"
    NONE = "none"


@dataclass
class LivenessState:
    blink_count: int = 0
    eye_was_open: bool = False
    eye_went_closed: bool = False
    last_blink_time: float = -math.inf

    movement_min_x: float = math.inf
    movement_max_x: float = -math.inf
    movement_min_y: float = math.inf
    movement_max_y: float = -math.inf
    movement_done: bool = False
    recent_positions: deque[Point] = field(default_factory=lambda: deque(maxlen=RECENT_POSITIONS))

    @property
    def has_movement_data(self) -> bool:
        return self.movement_max_x >= self.movement_min_x

    @property
    def x_range(self) -> float:
        if not self.has_movement_data:
            return 0.0
        return self.movement_max_x - self.movement_min_x

    @property
    def y_range(self) -> float:
        if not self.has_movement_data:
            return 0.0
        return self.movement_max_y - self.movement_min_y


@dataclass(frozen=True)
class LivenessResult:
    passed: bool
    message: str
    blink_count: int
    direction: Direction
    progress: float
    face_detected: bool = True
    ear: float | None = None


class CaptureStage(str, Enum):
    INIT = "init"
    DETECTING = "detecting"
    LIVENESS_CHECKING = "liveness_checking"
    CAPTURING = "capturing"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (CaptureStage.COMPLETE, CaptureStage.FAILED)


class FailureReason(str, Enum):
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    CAMERA_UNAVAILABLE = "camera_unavailable"
    DETECTOR_UNAVAILABLE = "detector_unavailable"


@dataclass
class CaptureOutcome:
    stage: CaptureStage
    descriptor: np.ndarray | None = None
    reason: FailureReason | None = None
    error: str = ""
    frames_processed: int = 0

    @property
    def succeeded(self) -> bool:
        return self.stage is CaptureStage.COMPLETE and self.descriptor is not None
