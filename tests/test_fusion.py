from __future__ import annotations

import pytest

from pushcount.calibration import Baseline
from pushcount.fusion import RatioSmoother, fuse_ratio
from pushcount.signals import Signals


def test_eye_ratio_weighted_over_shoulders():
    s = Signals(eye_distance=12.0, shoulder_distance=44.0, has_eyes=True, has_shoulders=True)
    ratio = fuse_ratio(s, Baseline(eye_distance=10.0, shoulder_distance=40.0))
    assert ratio == pytest.approx(0.7 * 1.2 + 0.3 * 1.1)


def test_single_ratio_used_alone():
    eyes_only = Signals(eye_distance=12.0, shoulder_distance=44.0, has_eyes=True, has_shoulders=True)
    assert fuse_ratio(eyes_only, Baseline(eye_distance=10.0)) == pytest.approx(1.2)
    shoulders_only = Signals(shoulder_distance=44.0, has_shoulders=True)
    assert fuse_ratio(shoulders_only, Baseline(eye_distance=10.0, shoulder_distance=40.0)) == pytest.approx(1.1)


def test_no_ratio_without_matching_baseline():
    assert fuse_ratio(Signals(eye_distance=12.0, has_eyes=True), Baseline(shoulder_distance=40.0)) is None
    assert fuse_ratio(Signals(avg_angle=120.0), Baseline(eye_distance=10.0)) is None


def test_smoother_cascades_ema_and_window():
    sm = RatioSmoother()
    assert sm.average is None
    assert sm.update(1.2) == pytest.approx(1.1)
    assert sm.update(1.2) == pytest.approx((1.1 + 1.15) / 2)
    assert sm.update(1.2) == pytest.approx((1.1 + 1.15 + 1.175) / 3)
    # oldest value evicted once a fourth arrives
    assert sm.update(1.2) == pytest.approx((1.15 + 1.175 + 1.1875) / 3)
    assert len(sm.buffer) == 3


def test_baseline_frame_stays_neutral():
    sm = RatioSmoother()
    for _ in range(10):
        avg = sm.update(1.0)
    assert avg == pytest.approx(1.0)


def test_reset_returns_to_neutral():
    sm = RatioSmoother()
    sm.update(1.5)
    sm.reset()
    assert sm.smoothed == 1.0
    assert sm.average is None
