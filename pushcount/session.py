"""
One tracking session: owns calibration, smoothing, the rep machine and the
set/session counters. Hosts push FrameSamples in, get events back, and read
snapshots for display. Nothing here does I/O or raises on keypoint input.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from .calibration import Baseline, CalibrationStatus, Calibrator
from .config import DEFAULT_CONFIG, EngineConfig
from .events import (
    TRACKING_OFF,
    CalibrationProgress,
    Event,
    PhaseChanged,
    RepCounted,
    TrackingLost,
)
from .fusion import RatioSmoother, fuse_ratio
from .keypoints import FrameSample
from .reps import FEEDBACK_GO_DOWN, RepPhase, RepStateMachine, Transition
from .signals import Signals, extract_signals

logger = logging.getLogger(__name__)

FEEDBACK_RESETTING = "Resetting baseline..."


def format_duration(seconds: float) -> str:
    """MM:SS.cc"""
    total_cs = int(max(0.0, seconds) * 100)
    minutes, rem = divmod(total_cs, 6000)
    secs, cs = divmod(rem, 100)
    return f"{minutes:02d}:{secs:02d}.{cs:02d}"


class SessionAggregator:
    """Per-set and per-session rep totals. The session total never decreases."""

    def __init__(self) -> None:
        self.reps_in_current_set = 0
        self.completed_sets: list[int] = []
        self.total_session_reps = 0
        self.rep_times: list[float] = []

    def record_rep(self, now: float) -> int:
        self.reps_in_current_set += 1
        self.total_session_reps += 1
        self.rep_times.append(now)
        return self.total_session_reps

    def pause_current_set(self) -> Optional[int]:
        """Close the open set if it has reps. Returns the closed set size, else None."""
        if self.reps_in_current_set <= 0:
            return None
        closed = self.reps_in_current_set
        self.completed_sets.append(closed)
        self.reps_in_current_set = 0
        logger.info("session: set %s closed with %s reps", len(self.completed_sets), closed)
        return closed

    def close(self) -> int:
        self.pause_current_set()
        return self.total_session_reps

    @property
    def avg_sec_per_rep(self) -> Optional[float]:
        if len(self.rep_times) < 2:
            return None
        gaps = [b - a for a, b in zip(self.rep_times, self.rep_times[1:])]
        return sum(gaps) / len(gaps)


@dataclass(frozen=True)
class DebugInfo:
    avg_ratio: Optional[float]
    smoothed_ratio: float
    angle: Optional[float]
    phase: RepPhase
    eyes: bool
    shoulders: bool
    baseline_eye: Optional[float]
    baseline_shoulder: Optional[float]


@dataclass(frozen=True)
class SessionSnapshot:
    phase: RepPhase
    feedback: str
    reps_in_current_set: int
    completed_sets: tuple[int, ...]
    total_session_reps: int
    calibration_progress: float
    paused: bool
    ended: bool
    active_seconds: float
    debug: Optional[DebugInfo] = None

    def to_dict(self) -> dict:
        out = {
            "phase": self.phase.value,
            "feedback": self.feedback,
            "reps_in_current_set": self.reps_in_current_set,
            "completed_sets": list(self.completed_sets),
            "total_session_reps": self.total_session_reps,
            "calibration_progress": self.calibration_progress,
            "paused": self.paused,
            "ended": self.ended,
            "active_time": format_duration(self.active_seconds),
        }
        if self.debug is not None:
            d = self.debug
            out["debug"] = {
                "ratio": round(d.avg_ratio, 2) if d.avg_ratio is not None else None,
                "angle": round(d.angle) if d.angle is not None else None,
                "stage": d.phase.value,
                "eyes": "OK" if d.eyes else "LOSS",
                "shld": "OK" if d.shoulders else "LOSS",
                "bsl": round(d.baseline_eye or d.baseline_shoulder or 0.0) or None,
            }
        return out


@dataclass
class SessionSummary:
    start_time: str
    end_time: str
    active_seconds: float
    total_reps: int
    reps_per_set: list[int] = field(default_factory=list)
    avg_sec_per_rep: Optional[float] = None
    params: dict = field(default_factory=dict)


class TrackingSession:
    """
    Frame-driven rep counter for a single workout. Not thread-safe: exactly
    one caller feeds frames, and a new instance is built per workout.
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config
        self.calibrator = Calibrator(config.calibration_sec)
        self.smoother = RatioSmoother(config.smoothing_alpha, config.ratio_window)
        self.machine = RepStateMachine(
            ratio_down=config.ratio_down,
            ratio_up=config.ratio_up,
            angle_down=config.angle_down,
            angle_up=config.angle_up,
            min_rep_interval_sec=config.min_rep_interval_sec,
            stuck_timeout_sec=config.stuck_timeout_sec,
        )
        self.counters = SessionAggregator()
        self.feedback = ""
        self.calibration_progress = 0.0
        self.paused = False
        self.ended = False
        self.started_at = datetime.now()
        self.active_seconds = 0.0
        self._last_frame_time: Optional[float] = None
        self._last_body_seen: Optional[float] = None
        self._last_signals = Signals()
        self._last_avg_ratio: Optional[float] = None

    @property
    def phase(self) -> RepPhase:
        return self.machine.phase

    @property
    def baseline(self) -> Baseline:
        return self.calibrator.baseline

    # -- control signals --------------------------------------------------

    def pause(self) -> None:
        """Close the current set and stop accepting frames until resume()."""
        self.counters.pause_current_set()
        if not self.paused:
            logger.info("session: paused (total=%s)", self.counters.total_session_reps)
        self.paused = True
        self._last_frame_time = None

    def resume(self) -> None:
        if self.paused:
            logger.info("session: resumed")
        self.paused = False

    def pause_current_set(self) -> Optional[int]:
        return self.counters.pause_current_set()

    def recalibrate(self) -> list[Event]:
        """
        Drop the baseline and rep phase; counters are kept. Returns the
        PhaseChanged for the reset, or nothing if already reset.
        """
        changed = self.machine.phase is not RepPhase.UNCALIBRATED or self.feedback != FEEDBACK_RESETTING
        self.calibrator.reset()
        self.smoother.reset()
        self.machine.reset()
        self.calibration_progress = 0.0
        self._last_avg_ratio = None
        self.feedback = FEEDBACK_RESETTING
        if not changed:
            return []
        logger.info("session: recalibration requested")
        return [PhaseChanged(RepPhase.UNCALIBRATED, FEEDBACK_RESETTING)]

    def end_session(self) -> int:
        total = self.counters.close()
        if not self.ended:
            logger.info(
                "session: ended total=%s sets=%s active=%s",
                total, self.counters.completed_sets, format_duration(self.active_seconds),
            )
        self.ended = True
        return total

    # -- per-frame pipeline -----------------------------------------------

    def process_frame(self, frame: FrameSample) -> list[Event]:
        if self.paused or self.ended:
            return []
        now = frame.timestamp
        events: list[Event] = []
        self._tick(now)

        signals = extract_signals(frame, self.config.min_score)
        self._last_signals = signals
        if signals.has_body or self._last_body_seen is None:
            self._last_body_seen = now
        if not signals.has_body and now - self._last_body_seen > self.config.tracking_lost_sec:
            self.feedback = TRACKING_OFF
            events.append(TrackingLost())

        stuck = self.machine.check_stuck(now)
        if stuck is not None:
            events.append(PhaseChanged(stuck.target, stuck.feedback))
            self.feedback = stuck.feedback

        if not self.calibrator.calibrated:
            self._calibrate(signals, now, events)
            return events

        ratio = fuse_ratio(signals, self.baseline, self.config.eye_weight)
        angle = signals.avg_angle
        if ratio is None and angle is None:
            return events

        avg_ratio = self.smoother.update(ratio) if ratio is not None else None
        self._last_avg_ratio = avg_ratio
        transition = self.machine.step(avg_ratio, angle, now)
        if transition is not None:
            self._apply(transition, now, events)
        return events

    def _tick(self, now: float) -> None:
        if self._last_frame_time is not None and now > self._last_frame_time:
            self.active_seconds += now - self._last_frame_time
        self._last_frame_time = now

    def _set_phase_feedback(self, phase: RepPhase, feedback: str, events: list[Event]) -> None:
        changed = phase is not self.machine.phase or feedback != self.feedback
        self.machine.phase = phase
        self.feedback = feedback
        if changed:
            events.append(PhaseChanged(phase, feedback))

    def _calibrate(self, signals: Signals, now: float, events: list[Event]) -> None:
        step = self.calibrator.update(signals, now)
        if step.status is CalibrationStatus.IDLE:
            self.calibration_progress = 0.0
            if self.machine.phase is not RepPhase.UNCALIBRATED:
                self._set_phase_feedback(RepPhase.UNCALIBRATED, self.feedback, events)
            return

        self.calibration_progress = step.progress
        events.append(CalibrationProgress(step.progress))
        if step.status is CalibrationStatus.COMPLETE:
            self.smoother.reset()
            self.machine.start(now)
            self.feedback = FEEDBACK_GO_DOWN
            events.append(PhaseChanged(RepPhase.UP, FEEDBACK_GO_DOWN))
            return
        self._set_phase_feedback(RepPhase.CALIBRATING, f"Calibrating... {step.seconds_left}s", events)

    def _apply(self, transition: Transition, now: float, events: list[Event]) -> None:
        if transition.counted:
            total = self.counters.record_rep(now)
            logger.info(
                "rep: counted set_reps=%s total=%s",
                self.counters.reps_in_current_set, total,
            )
            events.append(RepCounted(total))
        self.feedback = transition.feedback
        events.append(PhaseChanged(transition.target, transition.feedback))

    # -- read side ----------------------------------------------------------

    def snapshot(self, debug: bool = False) -> SessionSnapshot:
        info = None
        if debug:
            info = DebugInfo(
                avg_ratio=self._last_avg_ratio,
                smoothed_ratio=self.smoother.smoothed,
                angle=self._last_signals.avg_angle,
                phase=self.machine.phase,
                eyes=self._last_signals.has_eyes,
                shoulders=self._last_signals.has_shoulders,
                baseline_eye=self.baseline.eye_distance,
                baseline_shoulder=self.baseline.shoulder_distance,
            )
        return SessionSnapshot(
            phase=self.machine.phase,
            feedback=self.feedback,
            reps_in_current_set=self.counters.reps_in_current_set,
            completed_sets=tuple(self.counters.completed_sets),
            total_session_reps=self.counters.total_session_reps,
            calibration_progress=self.calibration_progress,
            paused=self.paused,
            ended=self.ended,
            active_seconds=self.active_seconds,
            debug=info,
        )

    def summary(self, params: Optional[dict] = None) -> SessionSummary:
        return SessionSummary(
            start_time=self.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            end_time=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            active_seconds=self.active_seconds,
            total_reps=self.counters.total_session_reps,
            reps_per_set=list(self.counters.completed_sets)
            + ([self.counters.reps_in_current_set] if self.counters.reps_in_current_set else []),
            avg_sec_per_rep=self.counters.avg_sec_per_rep,
            params=params if params is not None else asdict(self.config),
        )
