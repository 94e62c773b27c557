"""
Live webcam pipeline: capture, pose, rep session, overlay window.
Writes the session report on exit (q).
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import cv2

from .config import DEFAULT_CONFIG, EngineConfig
from .events import RepCounted
from .io_stream import TARGET_FPS, webcam_frames
from .keypoints import FrameSample
from .overlay import draw_realtime_overlay
from .pose import create_pose_detector, process_frame
from .report import write_session_report
from .session import TrackingSession

logger = logging.getLogger(__name__)

# Target resize width for faster inference
LIVE_RESIZE_WIDTH = 960
WINDOW_NAME = "Push-up Counter (q=quit, p=pause, c=recalibrate, d=debug)"


def run_live_pipeline(
    camera_id: int = 0,
    target_fps: float = TARGET_FPS,
    output_dir: str = "outputs",
    config: EngineConfig = DEFAULT_CONFIG,
    debug: bool = False,
) -> int:
    """
    Run the capture loop until q. p toggles pause (closing the current set),
    c recalibrates, d toggles the debug block. Returns the session total.
    """
    os.makedirs(output_dir, exist_ok=True)
    detector = create_pose_detector()
    session = TrackingSession(config)
    fps_est = float(target_fps)
    t_prev: Optional[float] = None
    sample: Optional[FrameSample] = None

    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    try:
        for frame_bgr, frame_idx, ts in webcam_frames(camera_id, target_fps=target_fps):
            if t_prev is not None and ts > t_prev:
                fps_est = 0.9 * fps_est + 0.1 * (1.0 / (ts - t_prev))
            t_prev = ts

            h, w = frame_bgr.shape[:2]
            scale = LIVE_RESIZE_WIDTH / w if w > LIVE_RESIZE_WIDTH else 1.0
            small = cv2.resize(frame_bgr, (LIVE_RESIZE_WIDTH, int(round(h * scale)))) if scale != 1.0 else frame_bgr

            # Paused: capture keeps running for the preview, the engine gets nothing.
            if not session.paused:
                sample = process_frame(small, detector, ts, size=(w, h))
                for event in session.process_frame(sample):
                    if isinstance(event, RepCounted):
                        logger.debug("live: rep event total=%s frame=%s", event.total, frame_idx)
            else:
                sample = None

            out_frame = frame_bgr.copy()
            draw_realtime_overlay(out_frame, sample, session.snapshot(debug=debug), fps_est)
            cv2.imshow(WINDOW_NAME, out_frame)

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("p"):
                if session.paused:
                    session.resume()
                else:
                    session.pause()
            if key == ord("c"):
                session.recalibrate()
            if key == ord("d"):
                debug = not debug
    finally:
        cv2.destroyAllWindows()

    total = session.end_session()
    report_path = write_session_report(session.summary(), output_dir, source="live")
    logger.info("live: done total=%s report=%s", total, report_path)
    return total
