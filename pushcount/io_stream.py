"""
Frame generators for video file or webcam.
Yields (frame_bgr, frame_idx, timestamp) where timestamp is seconds on a
monotonic clock: media time for files, perf_counter for the camera.
"""
from __future__ import annotations

import time
from typing import Callable, Generator, Optional

import cv2
import numpy as np

TARGET_FPS = 20.0


def video_frames(
    video_path: str,
    target_fps: Optional[float] = None,
) -> Generator[tuple[np.ndarray, int, float], None, None]:
    """
    Yield frames of a video file stamped with idx / fps. With target_fps set,
    frames are thinned so the stream runs close to that rate.
    """
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise FileNotFoundError(f"Cannot open video: {video_path}")
    try:
        fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
        step = sample_every(fps, target_fps) if target_fps else 1
        idx = 0
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            if idx % step == 0:
                yield (frame, idx, idx / fps)
            idx += 1
    finally:
        cap.release()


def sample_every(fps: float, target_fps: float = TARGET_FPS) -> int:
    """Keep every Nth frame of a recording so analysis runs near target_fps."""
    if fps <= 0 or target_fps <= 0:
        return 1
    return max(1, int(round(fps / target_fps)))


def webcam_frames(
    camera_id: int = 0,
    target_fps: float = TARGET_FPS,
    clock: Callable[[], float] = time.perf_counter,
    sleep: Callable[[float], None] = time.sleep,
) -> Generator[tuple[np.ndarray, int, float], None, None]:
    """
    Yield webcam frames paced to target_fps. Reads faster than the target are
    held back; slower reads are passed through as they come.
    """
    cap = cv2.VideoCapture(camera_id)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open camera {camera_id}. Check permissions and that no other app is using it.")
    try:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)
        cap.set(cv2.CAP_PROP_FPS, target_fps)
        interval = 1.0 / target_fps if target_fps > 0 else 0.0
        idx = 0
        next_due = clock()
        while True:
            wait = next_due - clock()
            if wait > 0:
                sleep(wait)
            ret, frame = cap.read()
            if not ret:
                break
            now = clock()
            next_due = max(next_due + interval, now)
            yield (frame, idx, now)
            idx += 1
    finally:
        cap.release()
