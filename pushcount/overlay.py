"""
Draw skeleton and session HUD on frames for the desktop live view.
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .keypoints import FrameSample, KeypointName
from .session import SessionSnapshot, format_duration
from .signals import MIN_KEYPOINT_SCORE

K = KeypointName
POSE_CONNECTIONS = (
    (K.LEFT_SHOULDER, K.RIGHT_SHOULDER),
    (K.LEFT_SHOULDER, K.LEFT_ELBOW),
    (K.LEFT_ELBOW, K.LEFT_WRIST),
    (K.RIGHT_SHOULDER, K.RIGHT_ELBOW),
    (K.RIGHT_ELBOW, K.RIGHT_WRIST),
    (K.LEFT_SHOULDER, K.LEFT_HIP),
    (K.RIGHT_SHOULDER, K.RIGHT_HIP),
    (K.LEFT_HIP, K.RIGHT_HIP),
    (K.LEFT_HIP, K.LEFT_KNEE),
    (K.LEFT_KNEE, K.LEFT_ANKLE),
    (K.RIGHT_HIP, K.RIGHT_KNEE),
    (K.RIGHT_KNEE, K.RIGHT_ANKLE),
)

_FEEDBACK_COLORS = {
    "Good Rep": (0, 255, 0),
    "Go Down": (0, 200, 255),
    "Go Up": (255, 200, 0),
    "Tracking Off": (0, 0, 255),
}


def _pt(x: float, y: float) -> tuple[int, int]:
    return (int(round(x)), int(round(y)))


def draw_skeleton(
    frame: np.ndarray,
    sample: FrameSample,
    min_score: float = MIN_KEYPOINT_SCORE,
    color: tuple[int, int, int] = (0, 255, 0),
    thickness: int = 2,
) -> None:
    """Draw confident joints and the bones between them (in-place)."""
    for a, b in POSE_CONNECTIONS:
        pa, pb = sample.get(a), sample.get(b)
        if pa and pb and pa.score > min_score and pb.score > min_score:
            cv2.line(frame, _pt(pa.x, pa.y), _pt(pb.x, pb.y), color, thickness)
    for kp in sample.keypoints.values():
        if kp.score > min_score:
            cv2.circle(frame, _pt(kp.x, kp.y), 5, color, -1)


def draw_realtime_overlay(
    frame: np.ndarray,
    sample: Optional[FrameSample],
    snap: SessionSnapshot,
    fps: Optional[float] = None,
) -> None:
    """
    Realtime HUD (in-place): skeleton, total / set counters, phase, timer,
    calibration bar, feedback banner and the optional debug block.
    """
    h, w = frame.shape[:2]
    if sample is not None:
        draw_skeleton(frame, sample)

    panel_h = 150 if snap.debug is not None else 100
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, panel_h), (40, 40, 40), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    font = cv2.FONT_HERSHEY_SIMPLEX
    white = (255, 255, 255)

    def put(line: str, y: int, scale: float = 0.6) -> None:
        cv2.putText(frame, line, (12, y), font, scale, white, 2, cv2.LINE_AA)

    set_no = len(snap.completed_sets) + 1
    put(f"Reps: {snap.total_session_reps}  |  Set {set_no}: {snap.reps_in_current_set}", 30, 0.8)
    status = f"Phase: {snap.phase.value}   Time: {format_duration(snap.active_seconds)}"
    if fps is not None:
        status += f"   FPS: {int(fps)}"
    if snap.paused:
        status += "   [PAUSED]"
    put(status, 60)
    if snap.completed_sets:
        put("Sets: " + " / ".join(str(s) for s in snap.completed_sets), 88, 0.5)

    if snap.debug is not None:
        d = snap.debug
        ratio = f"{d.avg_ratio:.2f}" if d.avg_ratio is not None else "--"
        angle = f"{d.angle:.0f}" if d.angle is not None else "--"
        bsl = d.baseline_eye or d.baseline_shoulder
        put(
            f"ratio {ratio}  angle {angle}  eyes {'OK' if d.eyes else 'LOSS'}  "
            f"shld {'OK' if d.shoulders else 'LOSS'}  bsl {f'{bsl:.0f}' if bsl else '--'}",
            118, 0.5,
        )

    if 0.0 < snap.calibration_progress < 100.0:
        bar_w = int((w - 24) * snap.calibration_progress / 100.0)
        cv2.rectangle(frame, (12, h - 40), (w - 12, h - 24), white, 1)
        cv2.rectangle(frame, (12, h - 40), (12 + bar_w, h - 24), (0, 200, 255), -1)

    if snap.feedback:
        color = _FEEDBACK_COLORS.get(snap.feedback, (0, 200, 255))
        (tw, _), _ = cv2.getTextSize(snap.feedback, font, 1.2, 3)
        cv2.putText(frame, snap.feedback, (max(12, (w - tw) // 2), h // 2), font, 1.2, color, 3, cv2.LINE_AA)
