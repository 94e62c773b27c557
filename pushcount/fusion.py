"""
Fuse eye and shoulder growth into one ratio and low-pass it twice:
an EMA followed by a short moving average.
"""
from __future__ import annotations

from collections import deque
from typing import Optional

import numpy as np

from .calibration import Baseline
from .signals import Signals

EYE_WEIGHT = 0.7
SMOOTHING_ALPHA = 0.5
RATIO_WINDOW = 3


def fuse_ratio(signals: Signals, baseline: Baseline, eye_weight: float = EYE_WEIGHT) -> Optional[float]:
    """Current size / baseline size, 1.0 at the calibrated posture. None if no ratio is computable."""
    eye_ratio = None
    if signals.eye_distance is not None and baseline.eye_distance:
        eye_ratio = signals.eye_distance / baseline.eye_distance
    shoulder_ratio = None
    if signals.shoulder_distance is not None and baseline.shoulder_distance:
        shoulder_ratio = signals.shoulder_distance / baseline.shoulder_distance

    if eye_ratio is not None and shoulder_ratio is not None:
        return eye_weight * eye_ratio + (1.0 - eye_weight) * shoulder_ratio
    return eye_ratio if eye_ratio is not None else shoulder_ratio


class RatioSmoother:
    """EMA seeded at 1.0, then the mean of the last `window` smoothed values."""

    def __init__(self, alpha: float = SMOOTHING_ALPHA, window: int = RATIO_WINDOW):
        self.alpha = alpha
        self.smoothed = 1.0
        self.buffer: deque[float] = deque(maxlen=window)

    def reset(self) -> None:
        self.smoothed = 1.0
        self.buffer.clear()

    def update(self, ratio: float) -> float:
        self.smoothed = self.smoothed * (1.0 - self.alpha) + ratio * self.alpha
        self.buffer.append(self.smoothed)
        return self.average

    @property
    def average(self) -> Optional[float]:
        if not self.buffer:
            return None
        return float(np.mean(self.buffer))
