"""
Events emitted by a tracking session after each frame. The engine only
returns them; hosts decide how to react (UI update, vibration, persistence).
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Union

from .reps import RepPhase

logger = logging.getLogger(__name__)

TRACKING_OFF = "Tracking Off"


@dataclass(frozen=True)
class RepCounted:
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": "rep_counted", **asdict(self)}


@dataclass(frozen=True)
class PhaseChanged:
    phase: RepPhase
    feedback: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "phase_changed", "phase": self.phase.value, "feedback": self.feedback}


@dataclass(frozen=True)
class CalibrationProgress:
    percent: float

    def to_dict(self) -> dict[str, Any]:
        return {"type": "calibration_progress", **asdict(self)}


@dataclass(frozen=True)
class TrackingLost:
    feedback: str = TRACKING_OFF

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tracking_lost", **asdict(self)}


Event = Union[RepCounted, PhaseChanged, CalibrationProgress, TrackingLost]

_HANDLERS = {
    RepCounted: ("on_rep_counted", lambda e: (e.total,)),
    PhaseChanged: ("on_phase_changed", lambda e: (e.phase, e.feedback)),
    CalibrationProgress: ("on_calibration_progress", lambda e: (e.percent,)),
    TrackingLost: ("on_tracking_lost", lambda e: (e.feedback,)),
}


def dispatch(events: Iterable[Event], listener: Any) -> None:
    """Call listener.on_<event>(...) for each event the listener implements."""
    for event in events:
        method_name, args = _HANDLERS[type(event)]
        handler = getattr(listener, method_name, None)
        if handler is None:
            logger.debug("dispatch: listener has no %s", method_name)
            continue
        handler(*args(event))
