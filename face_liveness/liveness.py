from __future__ import annotations

from .config import REQUIRED_BLINKS, Settings
from .eye_state import EyeStateTracker
from .head_movement import HeadMovementTracker
from .types import Direction, FacialLandmarks, LivenessResult, LivenessState

NO_FACE_MESSAGE = "No face detected. Please position your face in the frame."
PASSED_MESSAGE = "Liveness verified!"

DIRECTION_MESSAGES = {
    Direction.LEFT: "Turn your head slowly to the left",
    Direction.RIGHT: "Turn your head slowly to the right",
    Direction.UP: "Tilt your head up",
    Direction.DOWN: "Tilt your head down",
    Direction.COMPLETE: "Head movement complete",
    Direction.NONE: "Move your head slightly",
}


class LivenessEvaluator:
    def __init__(
        self,
        eye_tracker: EyeStateTracker | None = None,
        movement_tracker: HeadMovementTracker | None = None,
        required_blinks: int = REQUIRED_BLINKS,
    ):
        self.eye_tracker = eye_tracker or EyeStateTracker()
        self.movement_tracker = movement_tracker or HeadMovementTracker()
        self.required_blinks = required_blinks

    @classmethod
    def from_settings(cls, settings: Settings) -> "LivenessEvaluator":
        return cls(
            eye_tracker=EyeStateTracker.from_settings(settings),
            movement_tracker=HeadMovementTracker.from_settings(settings),
            required_blinks=settings.required_blinks,
        )

    def evaluate(self, landmarks: FacialLandmarks, state: LivenessState, now: float) -> LivenessResult:
        ear = self.eye_tracker.update_blink(landmarks.left_eye(), landmarks.right_eye(), now, state)
        direction, progress = self.movement_tracker.update_movement(landmarks.nose_tip(), state)

        blinks_done = state.blink_count >= self.required_blinks
        movement_done = state.movement_done or self.movement_tracker.ranges_satisfied(state)
        passed = blinks_done and movement_done

        if not blinks_done:
            message = f"Blink ({state.blink_count}/{self.required_blinks})"
        elif not movement_done:
            message = DIRECTION_MESSAGES[direction]
        else:
            message = PASSED_MESSAGE

        return LivenessResult(
            passed=passed,
            message=message,
            blink_count=state.blink_count,
            direction=direction,
            progress=progress,
            face_detected=True,
            ear=ear,
        )

    def no_face(self, state: LivenessState) -> LivenessResult:
        """Guidance for a frame without a face; leaves ``state`` untouched."""
        if state.movement_done:
            direction, progress = Direction.COMPLETE, 100.0
        else:
            direction, progress = Direction.NONE, 0.0
        return LivenessResult(
            passed=False,
            message=NO_FACE_MESSAGE,
            blink_count=state.blink_count,
            direction=direction,
            progress=progress,
            face_detected=False,
        )
