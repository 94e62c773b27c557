"""
MediaPipe Pose estimation -> named FrameSamples in image (pixel) coordinates.
Uses the Pose Landmarker task (MediaPipe 0.10+). CPU-only.
"""
from __future__ import annotations

import logging
import os
import urllib.request
from typing import Optional

import cv2
import numpy as np

from .keypoints import FrameSample, Keypoint, KeypointName

logger = logging.getLogger(__name__)

# MediaPipe's 33-landmark indices for the joints the engine knows about.
MEDIAPIPE_INDEX = {
    KeypointName.NOSE: 0,
    KeypointName.LEFT_EYE: 2,
    KeypointName.RIGHT_EYE: 5,
    KeypointName.LEFT_EAR: 7,
    KeypointName.RIGHT_EAR: 8,
    KeypointName.LEFT_SHOULDER: 11,
    KeypointName.RIGHT_SHOULDER: 12,
    KeypointName.LEFT_ELBOW: 13,
    KeypointName.RIGHT_ELBOW: 14,
    KeypointName.LEFT_WRIST: 15,
    KeypointName.RIGHT_WRIST: 16,
    KeypointName.LEFT_HIP: 23,
    KeypointName.RIGHT_HIP: 24,
    KeypointName.LEFT_KNEE: 25,
    KeypointName.RIGHT_KNEE: 26,
    KeypointName.LEFT_ANKLE: 27,
    KeypointName.RIGHT_ANKLE: 28,
}

# Pose Landmarker model URL (lite = faster, CPU-friendly)
_POSE_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
_POSE_MODEL_FILENAME = "pose_landmarker_lite.task"


def _get_model_path(cache_dir: Optional[str] = None) -> str:
    """Return path to pose landmarker model, downloading if needed."""
    if cache_dir is None:
        cache_dir = os.path.join(os.path.dirname(__file__), "..", "outputs")
    os.makedirs(cache_dir, exist_ok=True)
    path = os.path.join(cache_dir, _POSE_MODEL_FILENAME)
    if not os.path.isfile(path):
        logger.info("pose: downloading model to %s", path)
        urllib.request.urlretrieve(_POSE_MODEL_URL, path)
    return path


def create_pose_detector(
    min_detection_confidence: float = 0.5,
    min_tracking_confidence: float = 0.5,
    cache_dir: Optional[str] = None,
):
    """Single-person PoseLandmarker in IMAGE mode."""
    from mediapipe.tasks.python.core import base_options
    from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions
    from mediapipe.tasks.python.vision.core import vision_task_running_mode

    base = base_options.BaseOptions(model_asset_path=_get_model_path(cache_dir))
    options = PoseLandmarkerOptions(
        base_options=base,
        running_mode=vision_task_running_mode.VisionTaskRunningMode.IMAGE,
        num_poses=1,
        min_pose_detection_confidence=min_detection_confidence,
        min_pose_presence_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return PoseLandmarker.create_from_options(options)


def landmarks_to_frame(landmarks, width: int, height: int, timestamp: float) -> FrameSample:
    """Map normalized MediaPipe landmarks to named keypoints; visibility becomes the score."""
    keypoints = []
    for name, idx in MEDIAPIPE_INDEX.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        keypoints.append(Keypoint(name, lm.x * width, lm.y * height, float(lm.visibility or 0.0)))
    return FrameSample.from_keypoints(keypoints, timestamp)


def process_frame(
    frame_bgr: np.ndarray,
    detector,
    timestamp: float,
    size: Optional[tuple[int, int]] = None,
) -> FrameSample:
    """
    Run pose estimation on one BGR frame. Coordinates are scaled to `size`
    (w, h) when the frame was downscaled for inference. With no person in
    view the sample is empty, which the engine treats as a missing-body frame.
    """
    from mediapipe.tasks.python.vision.core import image as mp_image

    h, w = frame_bgr.shape[:2]
    if size is not None:
        w, h = size
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    result = detector.detect(mp_image.Image(image_format=mp_image.ImageFormat.SRGB, data=rgb))
    if not result.pose_landmarks:
        return FrameSample({}, timestamp)
    return landmarks_to_frame(result.pose_landmarks[0], w, h, timestamp)
