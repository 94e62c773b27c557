from __future__ import annotations

import pytest

from pushcount.io_stream import sample_every, video_frames


@pytest.mark.parametrize(
    "fps,target,expected",
    [(60.0, 20.0, 3), (30.0, 20.0, 2), (20.0, 20.0, 1), (10.0, 20.0, 1), (0.0, 20.0, 1), (30.0, 0.0, 1)],
)
def test_sample_every(fps, target, expected):
    assert sample_every(fps, target) == expected


def test_missing_video_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(video_frames(str(tmp_path / "nope.mp4")))
