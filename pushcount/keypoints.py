"""
Named 2-D keypoints and per-frame samples consumed by the rep engine.
Joint names follow the MoveNet 17-keypoint layout.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional


class KeypointName(str, enum.Enum):
    NOSE = "nose"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


_BY_VALUE = {k.value: k for k in KeypointName}


@dataclass(frozen=True)
class Keypoint:
    name: KeypointName
    x: float
    y: float
    score: float


@dataclass(frozen=True)
class FrameSample:
    """All keypoints from one estimation cycle plus a monotonic capture time (s)."""

    keypoints: Mapping[KeypointName, Keypoint] = field(default_factory=dict)
    timestamp: float = 0.0

    def get(self, name: KeypointName) -> Optional[Keypoint]:
        return self.keypoints.get(name)

    @classmethod
    def from_keypoints(cls, keypoints: Iterable[Keypoint], timestamp: float) -> "FrameSample":
        return cls({kp.name: kp for kp in keypoints}, timestamp)


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{what} must be a number, got {value!r}")
    out = float(value)
    if not math.isfinite(out):
        raise ValueError(f"{what} must be finite, got {value!r}")
    return out


def frame_from_dict(payload: Mapping[str, Any], timestamp: Optional[float] = None) -> FrameSample:
    """
    Parse {"keypoints": [{"name", "x", "y", "score"}, ...], "timestamp": t}.
    Unknown joint names are skipped; structural problems raise ValueError.
    `timestamp` overrides the payload's own value when given.
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"payload must be an object, got {type(payload).__name__}")
    raw_kps = payload.get("keypoints")
    if not isinstance(raw_kps, list):
        raise ValueError("payload has no 'keypoints' list")
    if timestamp is None:
        if "timestamp" not in payload:
            raise ValueError("payload has no 'timestamp'")
        timestamp = _number(payload["timestamp"], "timestamp")
    keypoints: dict[KeypointName, Keypoint] = {}
    for item in raw_kps:
        if not isinstance(item, Mapping):
            raise ValueError(f"keypoint entry must be an object, got {item!r}")
        raw_name = item.get("name")
        if not isinstance(raw_name, str):
            raise ValueError(f"keypoint name must be a string, got {raw_name!r}")
        name = _BY_VALUE.get(raw_name)
        if name is None:
            continue
        keypoints[name] = Keypoint(
            name=name,
            x=_number(item.get("x"), f"{name.value}.x"),
            y=_number(item.get("y"), f"{name.value}.y"),
            score=_number(item.get("score", 0.0), f"{name.value}.score"),
        )
    return FrameSample(keypoints, timestamp)


def frame_to_dict(frame: FrameSample) -> dict[str, Any]:
    return {
        "timestamp": frame.timestamp,
        "keypoints": [
            {"name": kp.name.value, "x": kp.x, "y": kp.y, "score": kp.score}
            for kp in frame.keypoints.values()
        ],
    }
