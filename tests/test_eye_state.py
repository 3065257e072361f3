import numpy as np
import pytest

from conftest import make_landmarks
from face_liveness.eye_state import EyeStateTracker, eye_aspect_ratio
from face_liveness.types import LivenessState


def feed(tracker, state, sequence):
    for now, ear in sequence:
        tracker.apply_ear(ear, now, state)


def test_eye_aspect_ratio_from_landmarks():
    landmarks = make_landmarks(ear=0.30)
    assert eye_aspect_ratio(landmarks.left_eye()) == pytest.approx(0.30)
    assert eye_aspect_ratio(landmarks.right_eye()) == pytest.approx(0.30)


def test_eye_aspect_ratio_zero_width_is_neutral():
    eye = np.array([(10, 10), (12, 5), (14, 5), (10, 10), (14, 15), (12, 15)], dtype=float)
    assert eye_aspect_ratio(eye) == 0.3


def test_open_closed_open_counts_one_blink():
    tracker = EyeStateTracker()
    state = LivenessState()
    feed(tracker, state, [(0.0, 0.30), (0.3, 0.14), (0.6, 0.30)])
    assert state.blink_count == 1
    assert state.last_blink_time == 0.6
    assert state.eye_went_closed is False


def test_reopen_inside_debounce_window_is_not_counted():
    tracker = EyeStateTracker()
    state = LivenessState()
    feed(tracker, state, [(0.0, 0.30), (0.3, 0.14), (0.6, 0.30)])
    feed(tracker, state, [(0.65, 0.30), (0.70, 0.14), (0.75, 0.30)])
    assert state.blink_count == 1

    feed(tracker, state, [(1.0, 0.30), (1.1, 0.30)])
    assert state.blink_count == 1


def test_second_blink_after_debounce_is_counted():
    tracker = EyeStateTracker()
    state = LivenessState()
    feed(tracker, state, [(0.0, 0.30), (0.25, 0.14), (0.5, 0.30), (0.75, 0.14), (1.0, 0.30)])
    assert state.blink_count == 2


def test_dead_zone_never_counts():
    tracker = EyeStateTracker()
    state = LivenessState()
    feed(tracker, state, [(0.0, 0.30)])
    feed(tracker, state, [(0.25 * i, 0.17 + (i % 5) * 0.01) for i in range(1, 40)])
    assert state.blink_count == 0
    assert state.eye_went_closed is False


def test_closed_eyes_before_any_open_frame_are_ignored():
    tracker = EyeStateTracker()
    state = LivenessState()
    feed(tracker, state, [(0.0, 0.10), (0.5, 0.30)])
    assert state.blink_count == 0


def test_update_blink_averages_both_eyes():
    tracker = EyeStateTracker()
    state = LivenessState()
    landmarks = make_landmarks(ear=0.30)
    ear = tracker.update_blink(landmarks.left_eye(), landmarks.right_eye(), 0.0, state)
    assert ear == pytest.approx(0.30)
    assert state.eye_was_open is True


def test_thresholds_must_leave_hysteresis_gap():
    with pytest.raises(ValueError):
        EyeStateTracker(open_threshold=0.2, closed_threshold=0.2)
