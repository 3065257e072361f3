from __future__ import annotations

import numpy as np

from .config import (
    BLINK_DEBOUNCE_SECONDS,
    EAR_CLOSED_THRESHOLD,
    EAR_DEGENERATE,
    EAR_OPEN_THRESHOLD,
    Settings,
)
from .types import LivenessState


def eye_aspect_ratio(eye: np.ndarray) -> float:
    """EAR over the 6-point eye contour.

    Points are ordered outer corner, two upper-lid points, inner corner,
    two lower-lid points. A zero-width eye yields a neutral open value.
    """
    width = abs(float(eye[0][0]) - float(eye[3][0]))
    if width == 0.0:
        return EAR_DEGENERATE
    lid_a = abs(float(eye[1][1]) - float(eye[5][1]))
    lid_b = abs(float(eye[2][1]) - float(eye[4][1]))
    return (lid_a + lid_b) / (2.0 * width)


class EyeStateTracker:
    def __init__(
        self,
        open_threshold: float = EAR_OPEN_THRESHOLD,
        closed_threshold: float = EAR_CLOSED_THRESHOLD,
        debounce_seconds: float = BLINK_DEBOUNCE_SECONDS,
    ):
        if closed_threshold >= open_threshold:
            raise ValueError("closed_threshold must be below open_threshold.")
        self.open_threshold = open_threshold
        self.closed_threshold = closed_threshold
        self.debounce_seconds = debounce_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "EyeStateTracker":
        return cls(
            open_threshold=settings.ear_open_threshold,
            closed_threshold=settings.ear_closed_threshold,
            debounce_seconds=settings.blink_debounce_seconds,
        )

    def update_blink(
        self,
        left_eye: np.ndarray,
        right_eye: np.ndarray,
        now: float,
        state: LivenessState,
    ) -> float:
        ear = (eye_aspect_ratio(left_eye) + eye_aspect_ratio(right_eye)) / 2.0
        self.apply_ear(ear, now, state)
        return ear

    def apply_ear(self, ear: float, now: float, state: LivenessState) -> None:
        if ear > self.open_threshold:
            if state.eye_went_closed:
                # A reopen inside the debounce window belongs to the blink already counted.
                if now - state.last_blink_time >= self.debounce_seconds:
                    state.blink_count += 1
                    state.last_blink_time = now
                state.eye_went_closed = False
            state.eye_was_open = True
        elif ear < self.closed_threshold and state.eye_was_open:
            state.eye_went_closed = True
