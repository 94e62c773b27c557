"""
Baseline capture: a timed window on the first visible body records the
reference eye / shoulder distances of the "up" posture. Later frames are
expressed relative to these.
"""
from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional

from .signals import Signals

logger = logging.getLogger(__name__)

CALIBRATION_SEC = 3.0
# Distances at or below this are degenerate and never used as a reference.
_MIN_DISTANCE = 1e-6


@dataclass(frozen=True)
class Baseline:
    eye_distance: Optional[float] = None
    shoulder_distance: Optional[float] = None

    @property
    def is_set(self) -> bool:
        return self.eye_distance is not None or self.shoulder_distance is not None


class CalibrationStatus(enum.Enum):
    IDLE = "idle"
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class CalibrationStep:
    status: CalibrationStatus
    progress: float = 0.0
    seconds_left: int = 0
    baseline: Optional[Baseline] = None


def _reference(distance: Optional[float]) -> Optional[float]:
    if distance is None or distance <= _MIN_DISTANCE:
        return None
    return distance


class Calibrator:
    def __init__(self, window_sec: float = CALIBRATION_SEC):
        self.window_sec = window_sec
        self.baseline = Baseline()
        self._started_at: Optional[float] = None

    @property
    def calibrated(self) -> bool:
        return self.baseline.is_set

    @property
    def calibrating(self) -> bool:
        return self._started_at is not None

    def reset(self) -> None:
        self.baseline = Baseline()
        self._started_at = None

    def update(self, signals: Signals, now: float) -> CalibrationStep:
        """Advance the capture window by one frame. Only meaningful while uncalibrated."""
        if not signals.has_body:
            if self._started_at is not None:
                logger.debug("calibration: body lost, window abandoned")
            self._started_at = None
            return CalibrationStep(CalibrationStatus.IDLE)

        if self._started_at is None:
            self._started_at = now
            return CalibrationStep(
                CalibrationStatus.STARTED, progress=0.0, seconds_left=math.ceil(self.window_sec)
            )

        elapsed = now - self._started_at
        progress = min(100.0, max(0.0, elapsed / self.window_sec * 100.0))
        if elapsed < self.window_sec:
            return CalibrationStep(
                CalibrationStatus.IN_PROGRESS,
                progress=progress,
                seconds_left=math.ceil(self.window_sec - elapsed),
            )

        baseline = Baseline(
            eye_distance=_reference(signals.eye_distance),
            shoulder_distance=_reference(signals.shoulder_distance),
        )
        self._started_at = None
        if not baseline.is_set:
            # Both distances degenerate: restart the window on the next frame.
            logger.warning("calibration: degenerate body size, restarting window")
            return CalibrationStep(CalibrationStatus.IDLE)
        self.baseline = baseline
        logger.info(
            "calibration: baseline eye=%s shoulder=%s",
            baseline.eye_distance, baseline.shoulder_distance,
        )
        return CalibrationStep(CalibrationStatus.COMPLETE, progress=100.0, baseline=baseline)
