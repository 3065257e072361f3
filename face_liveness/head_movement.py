from __future__ import annotations

from .config import MOVEMENT_X_THRESHOLD, MOVEMENT_Y_THRESHOLD, Settings
from .types import Direction, LivenessState, Point


class HeadMovementTracker:
    """Accumulates the nose-tip bounding range over a session.

    Thresholds are in the pixel space of the detector's frames; callers
    feeding a different resolution than the one configured on the camera
    must scale them.
    """

    def __init__(
        self,
        x_threshold: float = MOVEMENT_X_THRESHOLD,
        y_threshold: float = MOVEMENT_Y_THRESHOLD,
    ):
        if x_threshold <= 0 or y_threshold <= 0:
            raise ValueError("Movement thresholds must be positive.")
        self.x_threshold = x_threshold
        self.y_threshold = y_threshold

    @classmethod
    def from_settings(cls, settings: Settings) -> "HeadMovementTracker":
        return cls(x_threshold=settings.movement_x_threshold, y_threshold=settings.movement_y_threshold)

    def ranges_satisfied(self, state: LivenessState) -> bool:
        return state.x_range >= self.x_threshold and state.y_range >= self.y_threshold

    def update_movement(self, nose: Point, state: LivenessState) -> tuple[Direction, float]:
        state.recent_positions.append(nose)

        if state.movement_done:
            return Direction.COMPLETE, 100.0

        state.movement_min_x = min(state.movement_min_x, nose.x)
        state.movement_max_x = max(state.movement_max_x, nose.x)
        state.movement_min_y = min(state.movement_min_y, nose.y)
        state.movement_max_y = max(state.movement_max_y, nose.y)

        x_range = state.x_range
        y_range = state.y_range

        if self.ranges_satisfied(state):
            state.movement_done = True
            return Direction.COMPLETE, 100.0

        if x_range < self.x_threshold:
            progress = (x_range / self.x_threshold) * 50.0
            center_x = (state.movement_min_x + state.movement_max_x) / 2.0 if x_range > 0 else nose.x
            direction = Direction.LEFT if nose.x > center_x else Direction.RIGHT
            return direction, progress

        progress = 50.0 + (y_range / self.y_threshold) * 50.0
        center_y = (state.movement_min_y + state.movement_max_y) / 2.0 if y_range > 0 else nose.y
        direction = Direction.UP if nose.y > center_y else Direction.DOWN
        return direction, progress
