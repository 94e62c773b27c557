from __future__ import annotations

import numpy as np

from pushcount.overlay import draw_realtime_overlay, draw_skeleton
from pushcount.session import TrackingSession


def test_skeleton_draws_confident_joints(make_frame):
    img = np.zeros((300, 400, 3), dtype=np.uint8)
    draw_skeleton(img, make_frame(0.0, shoulder=80.0, angle=150.0))
    assert img.any()


def test_skeleton_ignores_low_scores(make_frame):
    img = np.zeros((300, 400, 3), dtype=np.uint8)
    draw_skeleton(img, make_frame(0.0, eye=10.0, shoulder=80.0, score=0.2))
    assert not img.any()


def test_hud_renders_for_every_state(make_frame, calibrate):
    session = TrackingSession()
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    draw_realtime_overlay(img, None, session.snapshot())

    calibrate(session, eye=10.0, angle=170.0)
    session.pause()
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    draw_realtime_overlay(img, make_frame(3.0, eye=10.0, angle=170.0), session.snapshot(debug=True), fps=19.7)
    assert img.shape == (480, 640, 3)
    assert img.any()
