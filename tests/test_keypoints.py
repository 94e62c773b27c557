from __future__ import annotations

import pytest

from pushcount.keypoints import FrameSample, KeypointName, frame_from_dict, frame_to_dict


def test_parse_payload_skips_unknown_joints():
    frame = frame_from_dict(
        {
            "timestamp": 1.25,
            "keypoints": [
                {"name": "left_eye", "x": 10, "y": 20, "score": 0.8},
                {"name": "tail", "x": 0, "y": 0, "score": 1.0},
                {"name": "nose", "x": 12.5, "y": 30.0},
            ],
        }
    )
    assert frame.timestamp == 1.25
    assert set(frame.keypoints) == {KeypointName.LEFT_EYE, KeypointName.NOSE}
    assert frame.get(KeypointName.NOSE).score == 0.0
    assert frame.get(KeypointName.RIGHT_EYE) is None


def test_explicit_timestamp_wins():
    frame = frame_from_dict({"keypoints": []}, timestamp=7.0)
    assert frame.timestamp == 7.0
    assert frame.keypoints == {}


@pytest.mark.parametrize(
    "payload",
    [
        {"timestamp": 0.0},
        {"keypoints": []},
        {"timestamp": 0.0, "keypoints": ["left_eye"]},
        {"timestamp": 0.0, "keypoints": [{"name": "left_eye", "x": "1", "y": 0}]},
        {"timestamp": 0.0, "keypoints": [{"name": "left_eye", "x": float("nan"), "y": 0}]},
        {"timestamp": True, "keypoints": []},
        [1, 2],
        {"timestamp": 0.0, "keypoints": [{"name": ["left_eye"], "x": 1, "y": 1}]},
        {"timestamp": 0.0, "keypoints": [{"name": {"joint": "nose"}, "x": 1, "y": 1}]},
    ],
)
def test_malformed_payload_raises(payload):
    with pytest.raises(ValueError):
        frame_from_dict(payload)


def test_dump_format_parses_back(make_frame):
    frame = make_frame(2.5, eye=10.0, shoulder=40.0)
    assert frame_from_dict(frame_to_dict(frame)) == FrameSample(dict(frame.keypoints), 2.5)
