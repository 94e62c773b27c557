"""
Per-frame motion indicators: inter-eye and inter-shoulder distance (camera
proximity) and elbow angle (joint bend). Pure functions of one FrameSample.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .keypoints import FrameSample, Keypoint, KeypointName

MIN_KEYPOINT_SCORE = 0.3


@dataclass(frozen=True)
class Signals:
    eye_distance: Optional[float] = None
    shoulder_distance: Optional[float] = None
    left_angle: Optional[float] = None
    right_angle: Optional[float] = None
    avg_angle: Optional[float] = None
    has_eyes: bool = False
    has_shoulders: bool = False
    has_left_arm: bool = False
    has_right_arm: bool = False

    @property
    def has_body(self) -> bool:
        return self.has_eyes or self.has_shoulders


def _finite(kp: Keypoint) -> bool:
    return math.isfinite(kp.x) and math.isfinite(kp.y) and math.isfinite(kp.score)


def _usable(frame: FrameSample, names: tuple[KeypointName, ...], min_score: float) -> Optional[list[Keypoint]]:
    pts = [frame.get(n) for n in names]
    if any(p is None or not _finite(p) or p.score <= min_score for p in pts):
        return None
    return pts


def _distance(a: Keypoint, b: Keypoint) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def elbow_angle_deg(a: Keypoint, b: Keypoint, c: Keypoint) -> float:
    """Angle at b for a-b-c in degrees, folded into [0, 180]."""
    radians = math.atan2(c.y - b.y, c.x - b.x) - math.atan2(a.y - b.y, a.x - b.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def extract_signals(frame: FrameSample, min_score: float = MIN_KEYPOINT_SCORE) -> Signals:
    eyes = _usable(frame, (KeypointName.LEFT_EYE, KeypointName.RIGHT_EYE), min_score)
    shoulders = _usable(frame, (KeypointName.LEFT_SHOULDER, KeypointName.RIGHT_SHOULDER), min_score)
    left_arm = _usable(
        frame, (KeypointName.LEFT_SHOULDER, KeypointName.LEFT_ELBOW, KeypointName.LEFT_WRIST), min_score
    )
    right_arm = _usable(
        frame, (KeypointName.RIGHT_SHOULDER, KeypointName.RIGHT_ELBOW, KeypointName.RIGHT_WRIST), min_score
    )

    left = elbow_angle_deg(*left_arm) if left_arm else None
    right = elbow_angle_deg(*right_arm) if right_arm else None
    if left is not None and right is not None:
        avg = (left + right) / 2.0
    else:
        avg = left if left is not None else right

    return Signals(
        eye_distance=_distance(*eyes) if eyes else None,
        shoulder_distance=_distance(*shoulders) if shoulders else None,
        left_angle=left,
        right_angle=right,
        avg_angle=avg,
        has_eyes=eyes is not None,
        has_shoulders=shoulders is not None,
        has_left_arm=left_arm is not None,
        has_right_arm=right_arm is not None,
    )
