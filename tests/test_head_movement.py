import numpy as np
import pytest

from face_liveness.head_movement import HeadMovementTracker
from face_liveness.types import Direction, LivenessState, Point


def test_first_point_has_zero_range():
    tracker = HeadMovementTracker()
    state = LivenessState()
    assert state.x_range == 0.0
    direction, progress = tracker.update_movement(Point(100, 100), state)
    assert state.x_range == 0.0
    assert state.y_range == 0.0
    assert progress == 0.0
    assert direction is Direction.RIGHT


def test_horizontal_phase_points_to_unexplored_side():
    tracker = HeadMovementTracker()
    state = LivenessState()
    tracker.update_movement(Point(100, 100), state)
    direction, progress = tracker.update_movement(Point(115, 100), state)
    assert progress == pytest.approx(25.0)
    # Nose at 115 is right of the 107.5 center.
    assert direction is Direction.LEFT

    for _ in range(8):
        direction, _ = tracker.update_movement(Point(115, 100), state)
    assert direction is Direction.LEFT

    direction, progress = tracker.update_movement(Point(100, 100), state)
    assert progress == pytest.approx(25.0)
    assert direction is Direction.RIGHT


def test_vertical_phase_after_horizontal_range_met():
    tracker = HeadMovementTracker()
    state = LivenessState()
    tracker.update_movement(Point(100, 100), state)
    direction, progress = tracker.update_movement(Point(130, 100), state)
    assert progress == pytest.approx(50.0)
    assert direction is Direction.DOWN

    direction, progress = tracker.update_movement(Point(130, 110), state)
    assert progress == pytest.approx(75.0)
    assert direction is Direction.UP

    direction, progress = tracker.update_movement(Point(130, 100), state)
    assert progress == pytest.approx(75.0)
    assert direction is Direction.DOWN


def test_direction_follows_current_position_not_history():
    tracker = HeadMovementTracker()
    state = LivenessState()
    for _ in range(9):
        tracker.update_movement(Point(100, 100), state)
    direction, _ = tracker.update_movement(Point(120, 100), state)
    assert direction is Direction.LEFT


def test_completion_freezes_range():
    tracker = HeadMovementTracker()
    state = LivenessState()
    for point in (Point(100, 100), Point(130, 100), Point(130, 120)):
        direction, progress = tracker.update_movement(point, state)
    assert direction is Direction.COMPLETE
    assert progress == 100.0
    assert state.movement_done is True

    frozen = (state.movement_min_x, state.movement_max_x, state.movement_min_y, state.movement_max_y)
    direction, progress = tracker.update_movement(Point(500, -300), state)
    assert direction is Direction.COMPLETE
    assert progress == 100.0
    assert (state.movement_min_x, state.movement_max_x, state.movement_min_y, state.movement_max_y) == frozen


def test_ranges_are_monotonic_for_any_sequence():
    tracker = HeadMovementTracker(x_threshold=400, y_threshold=400)
    state = LivenessState()
    rng = np.random.default_rng(7)
    last_x, last_y = 0.0, 0.0
    for x, y in rng.uniform(0, 300, size=(200, 2)):
        tracker.update_movement(Point(float(x), float(y)), state)
        assert state.x_range >= last_x
        assert state.y_range >= last_y
        assert state.movement_max_x >= state.movement_min_x
        last_x, last_y = state.x_range, state.y_range


def test_ranges_frozen_forever_after_done():
    tracker = HeadMovementTracker()
    state = LivenessState()
    rng = np.random.default_rng(3)
    for x, y in rng.uniform(0, 640, size=(50, 2)):
        tracker.update_movement(Point(float(x), float(y)), state)
        if state.movement_done:
            break
    assert state.movement_done
    x_range, y_range = state.x_range, state.y_range
    for x, y in rng.uniform(-1000, 1000, size=(50, 2)):
        tracker.update_movement(Point(float(x), float(y)), state)
    assert state.x_range == x_range
    assert state.y_range == y_range


def test_recent_positions_are_bounded():
    tracker = HeadMovementTracker()
    state = LivenessState()
    for i in range(25):
        tracker.update_movement(Point(100 + i, 100), state)
    assert len(state.recent_positions) == 10
    assert state.recent_positions[-1] == Point(124, 100)


def test_thresholds_must_be_positive():
    with pytest.raises(ValueError):
        HeadMovementTracker(x_threshold=0)
