"""
Engine thresholds for one session. Defaults come from the modules that
use them and suit a phone on the floor facing the performer; each value can
be overridden with a PUSHCOUNT_* env var.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from .calibration import CALIBRATION_SEC
from .fusion import EYE_WEIGHT, RATIO_WINDOW, SMOOTHING_ALPHA
from .reps import (
    ANGLE_DOWN_DEG,
    ANGLE_UP_DEG,
    MIN_REP_INTERVAL_SEC,
    RATIO_DOWN,
    RATIO_UP,
    STUCK_TIMEOUT_SEC,
    TRACKING_LOST_SEC,
)
from .signals import MIN_KEYPOINT_SCORE

logger = logging.getLogger(__name__)

ENV_PREFIX = "PUSHCOUNT_"


@dataclass(frozen=True)
class EngineConfig:
    # Keypoint confidence a joint must exceed to be usable.
    min_score: float = MIN_KEYPOINT_SCORE
    # Baseline capture window (s).
    calibration_sec: float = CALIBRATION_SEC
    # No body for this long -> "Tracking Off" (s).
    tracking_lost_sec: float = TRACKING_LOST_SEC
    # Fusion weight of the eye ratio; shoulders get the rest.
    eye_weight: float = EYE_WEIGHT
    # EMA decay for the fused ratio.
    smoothing_alpha: float = SMOOTHING_ALPHA
    # Moving-average window over the smoothed ratio.
    ratio_window: int = RATIO_WINDOW
    # Size voter: > down confirms descent, < up confirms ascent.
    ratio_down: float = RATIO_DOWN
    ratio_up: float = RATIO_UP
    # Elbow voter (deg): < down = bent, > up = straight.
    angle_down: float = ANGLE_DOWN_DEG
    angle_up: float = ANGLE_UP_DEG
    # Minimum gap after a counted rep before DOWN -> GOING_UP (s).
    min_rep_interval_sec: float = MIN_REP_INTERVAL_SEC
    # Max residency in GOING_DOWN / GOING_UP before forced reset (s).
    stuck_timeout_sec: float = STUCK_TIMEOUT_SEC


DEFAULT_CONFIG = EngineConfig()


def load_config(env: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Build an EngineConfig from PUSHCOUNT_<FIELD> variables (e.g. PUSHCOUNT_RATIO_DOWN)."""
    if env is None:
        env = os.environ
    overrides: dict[str, float | int] = {}
    for f in fields(EngineConfig):
        raw = env.get(ENV_PREFIX + f.name.upper())
        if raw is None or raw.strip() == "":
            continue
        cast = int if f.type in ("int", int) else float
        try:
            overrides[f.name] = cast(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{f.name.upper()} must be a number, got {raw!r}") from None
    if overrides:
        logger.info("config overrides from env: %s", overrides)
    return replace(DEFAULT_CONFIG, **overrides)
