from __future__ import annotations

import math
from typing import Optional

import pytest

from pushcount.keypoints import FrameSample, Keypoint, KeypointName

K = KeypointName
CENTER_X = 200.0
EYE_Y = 50.0
SHOULDER_Y = 120.0
DEFAULT_SHOULDER_WIDTH = 80.0
LIMB = 50.0


def _arm(shoulder_x: float, angle: float, side: str, score: float) -> list[Keypoint]:
    """Shoulder-elbow-wrist with the requested angle at the elbow (upper arm hangs straight down)."""
    elbow_x, elbow_y = shoulder_x, SHOULDER_Y + LIMB
    phi = math.radians(-90.0 + angle)
    wrist_x = elbow_x + LIMB * math.cos(phi)
    wrist_y = elbow_y + LIMB * math.sin(phi)
    elbow = K.LEFT_ELBOW if side == "left" else K.RIGHT_ELBOW
    wrist = K.LEFT_WRIST if side == "left" else K.RIGHT_WRIST
    return [Keypoint(elbow, elbow_x, elbow_y, score), Keypoint(wrist, wrist_x, wrist_y, score)]


def build_frame(
    t: float,
    eye: Optional[float] = None,
    shoulder: Optional[float] = None,
    angle: Optional[float] = None,
    score: float = 0.9,
) -> FrameSample:
    """
    Synthetic frame: eye / shoulder give the inter-joint distances; angle
    adds both arms at that elbow angle (shoulders are then always present,
    at full confidence only when `shoulder` is given).
    """
    kps: list[Keypoint] = []
    if eye is not None:
        kps.append(Keypoint(K.LEFT_EYE, CENTER_X + eye / 2, EYE_Y, score))
        kps.append(Keypoint(K.RIGHT_EYE, CENTER_X - eye / 2, EYE_Y, score))
    if shoulder is not None or angle is not None:
        width = shoulder if shoulder is not None else DEFAULT_SHOULDER_WIDTH
        # Shoulders only used for the arms stay below the confidence cut as a pair.
        right_score = score if shoulder is not None else 0.1
        left_x, right_x = CENTER_X + width / 2, CENTER_X - width / 2
        kps.append(Keypoint(K.LEFT_SHOULDER, left_x, SHOULDER_Y, score))
        kps.append(Keypoint(K.RIGHT_SHOULDER, right_x, SHOULDER_Y, right_score))
        if angle is not None:
            kps.extend(_arm(left_x, angle, "left", score))
    return FrameSample.from_keypoints(kps, t)


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def calibrate():
    """Run a session through the 3 s baseline window; returns the timestamp of the last frame."""

    def _run(session, start: float = 0.0, **frame_kwargs) -> float:
        t = start
        while True:
            session.process_frame(build_frame(t, **frame_kwargs))
            if session.calibrator.calibrated:
                return t
            t = round(t + 0.5, 6)

    return _run
