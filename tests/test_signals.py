from __future__ import annotations

import pytest

from pushcount.keypoints import FrameSample, Keypoint, KeypointName
from pushcount.signals import elbow_angle_deg, extract_signals

K = KeypointName


def kp(name, x, y, score=0.9):
    return Keypoint(name, x, y, score)


def test_eye_and_shoulder_distance(make_frame):
    s = extract_signals(make_frame(0.0, eye=12.0, shoulder=80.0))
    assert s.has_eyes and s.has_shoulders and s.has_body
    assert s.eye_distance == pytest.approx(12.0)
    assert s.shoulder_distance == pytest.approx(80.0)


def test_score_must_exceed_threshold():
    frame = FrameSample.from_keypoints(
        [kp(K.LEFT_EYE, 0, 0, 0.3), kp(K.RIGHT_EYE, 10, 0, 0.9)], 0.0
    )
    s = extract_signals(frame)
    assert not s.has_eyes
    assert s.eye_distance is None
    assert not s.has_body


def test_empty_frame_is_no_body():
    s = extract_signals(FrameSample({}, 1.0))
    assert not s.has_body
    assert s.avg_angle is None


def test_straight_and_bent_arm(make_frame):
    assert extract_signals(make_frame(0.0, eye=10.0, angle=180.0)).avg_angle == pytest.approx(180.0)
    assert extract_signals(make_frame(0.0, eye=10.0, angle=90.0)).avg_angle == pytest.approx(90.0)


def test_angle_is_reflected_into_half_turn():
    # raw atan2 difference here is 270 degrees
    a = kp(K.LEFT_SHOULDER, 0, -1)
    b = kp(K.LEFT_ELBOW, 0, 0)
    c = kp(K.LEFT_WRIST, -1, 0)
    assert elbow_angle_deg(a, b, c) == pytest.approx(90.0)


def test_avg_angle_uses_both_arms_or_the_one_present():
    frame = FrameSample.from_keypoints(
        [
            kp(K.LEFT_SHOULDER, 0, 0), kp(K.LEFT_ELBOW, 0, 10), kp(K.LEFT_WRIST, 0, 20),
            kp(K.RIGHT_SHOULDER, 50, 0), kp(K.RIGHT_ELBOW, 50, 10), kp(K.RIGHT_WRIST, 60, 10),
        ],
        0.0,
    )
    s = extract_signals(frame)
    assert s.left_angle == pytest.approx(180.0)
    assert s.right_angle == pytest.approx(90.0)
    assert s.avg_angle == pytest.approx(135.0)

    one_arm = FrameSample.from_keypoints(
        [kp(K.RIGHT_SHOULDER, 50, 0), kp(K.RIGHT_ELBOW, 50, 10), kp(K.RIGHT_WRIST, 60, 10)], 0.0
    )
    s = extract_signals(one_arm)
    assert s.left_angle is None
    assert s.avg_angle == pytest.approx(90.0)
    assert not s.has_body


@pytest.mark.parametrize(
    "left_eye",
    [
        kp(K.LEFT_EYE, 0, 0, float("nan")),
        kp(K.LEFT_EYE, float("inf"), 0),
        kp(K.LEFT_EYE, 0, float("nan")),
    ],
)
def test_non_finite_joint_is_unusable(left_eye):
    s = extract_signals(FrameSample.from_keypoints([left_eye, kp(K.RIGHT_EYE, 10, 0)], 0.0))
    assert not s.has_eyes
    assert s.eye_distance is None
