"""
Rep detection: a 5-phase machine driven by two independent voters.
Size voter: smoothed body-size ratio vs baseline (grows while lowering).
Angle voter: mean elbow angle (bends while lowering).
Either voter alone is enough to confirm a movement direction.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

RATIO_DOWN = 1.08
RATIO_UP = 1.05
ANGLE_DOWN_DEG = 135.0
ANGLE_UP_DEG = 160.0
MIN_REP_INTERVAL_SEC = 0.35
STUCK_TIMEOUT_SEC = 3.0
# No body for this long -> "Tracking Off".
TRACKING_LOST_SEC = 10.0

FEEDBACK_GO_DOWN = "Go Down"
FEEDBACK_GO_UP = "Go Up"
FEEDBACK_GOOD_REP = "Good Rep"


class RepPhase(str, enum.Enum):
    UNCALIBRATED = "UNCALIBRATED"
    CALIBRATING = "CALIBRATING"
    UP = "UP"
    GOING_DOWN = "GOING_DOWN"
    DOWN = "DOWN"
    GOING_UP = "GOING_UP"


TRANSITIONAL_PHASES = frozenset({RepPhase.GOING_DOWN, RepPhase.GOING_UP})


@dataclass(frozen=True)
class Transition:
    source: RepPhase
    target: RepPhase
    feedback: str
    counted: bool = False


@dataclass(frozen=True)
class Votes:
    descending: bool
    ascending: bool


class RepStateMachine:
    def __init__(
        self,
        ratio_down: float = RATIO_DOWN,
        ratio_up: float = RATIO_UP,
        angle_down: float = ANGLE_DOWN_DEG,
        angle_up: float = ANGLE_UP_DEG,
        min_rep_interval_sec: float = MIN_REP_INTERVAL_SEC,
        stuck_timeout_sec: float = STUCK_TIMEOUT_SEC,
    ):
        self.ratio_down = ratio_down
        self.ratio_up = ratio_up
        self.angle_down = angle_down
        self.angle_up = angle_up
        self.min_rep_interval_sec = min_rep_interval_sec
        self.stuck_timeout_sec = stuck_timeout_sec
        self.phase = RepPhase.UNCALIBRATED
        self.stage_started_at: Optional[float] = None
        self.last_count_time: Optional[float] = None

    def reset(self) -> None:
        """Back to UNCALIBRATED. The last-count time survives so the debounce still holds."""
        self.phase = RepPhase.UNCALIBRATED
        self.stage_started_at = None

    def start(self, now: float) -> None:
        """Enter UP once a baseline exists."""
        self.phase = RepPhase.UP
        self.stage_started_at = now

    def votes(self, avg_ratio: Optional[float], avg_angle: Optional[float]) -> Votes:
        descending = (avg_ratio is not None and avg_ratio > self.ratio_down) or (
            avg_angle is not None and avg_angle < self.angle_down
        )
        ascending = (avg_ratio is not None and avg_ratio < self.ratio_up) or (
            avg_angle is not None and avg_angle > self.angle_up
        )
        return Votes(descending, ascending)

    def check_stuck(self, now: float) -> Optional[Transition]:
        if self.phase not in TRANSITIONAL_PHASES or self.stage_started_at is None:
            return None
        if now - self.stage_started_at <= self.stuck_timeout_sec:
            return None
        logger.info("rep: stuck in %s for > %.1fs, reset to UP", self.phase.value, self.stuck_timeout_sec)
        return self._move(RepPhase.UP, FEEDBACK_GO_DOWN, now)

    def step(self, avg_ratio: Optional[float], avg_angle: Optional[float], now: float) -> Optional[Transition]:
        """
        Apply one frame of votes. Descent is evaluated first; a frame that
        confirms descent never triggers an ascent edge. Returns the transition
        taken, or None when the phase is unchanged.
        """
        if self.phase not in (RepPhase.UP, RepPhase.GOING_DOWN, RepPhase.DOWN, RepPhase.GOING_UP):
            return None
        v = self.votes(avg_ratio, avg_angle)

        if v.descending:
            if self.phase in (RepPhase.UP, RepPhase.GOING_UP):
                logger.debug("rep: -> GOING_DOWN (ratio=%s angle=%s)", avg_ratio, avg_angle)
                return self._move(RepPhase.GOING_DOWN, FEEDBACK_GO_UP, now)
            if self.phase is RepPhase.GOING_DOWN:
                return self._move(RepPhase.DOWN, FEEDBACK_GO_UP, now)
            return None

        if v.ascending:
            if self.phase is RepPhase.DOWN:
                if self.last_count_time is None or now - self.last_count_time >= self.min_rep_interval_sec:
                    return self._move(RepPhase.GOING_UP, FEEDBACK_GO_UP, now)
                return None
            if self.phase is RepPhase.GOING_UP:
                self.last_count_time = now
                return self._move(RepPhase.UP, FEEDBACK_GOOD_REP, now, counted=True)
            if self.phase is RepPhase.GOING_DOWN:
                logger.debug("rep: descent aborted (ratio=%s angle=%s)", avg_ratio, avg_angle)
                return self._move(RepPhase.UP, FEEDBACK_GO_DOWN, now)
        return None

    def _move(self, target: RepPhase, feedback: str, now: float, counted: bool = False) -> Transition:
        t = Transition(self.phase, target, feedback, counted)
        self.phase = target
        self.stage_started_at = now
        return t
