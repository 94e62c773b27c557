from __future__ import annotations

import json

from pushcount.report import write_session_report
from pushcount.session import SessionSummary


def make_summary(**kw):
    base = dict(start_time="2024-01-01 10:00:00", end_time="2024-01-01 10:05:00", active_seconds=95.5, total_reps=0)
    base.update(kw)
    return SessionSummary(**base)


def test_report_files_written(tmp_path):
    summary = make_summary(total_reps=12, reps_per_set=[7, 5], avg_sec_per_rep=1.4, params={"ratio_down": 1.08})
    report = write_session_report(summary, str(tmp_path), source="replay")

    data = json.loads((tmp_path / "session_summary.json").read_text())
    assert data["total_reps"] == 12
    assert data["reps_per_set"] == [7, 5]
    assert data["source"] == "replay"
    assert data["params"] == {"ratio_down": 1.08}

    page = (tmp_path / "report.html").read_text()
    assert report == str(tmp_path / "report.html")
    assert "<b>Total reps:</b> 12" in page
    assert "01:35.50" in page
    assert (tmp_path / "reps_per_set.png").exists()


def test_empty_session_has_no_plot(tmp_path):
    write_session_report(make_summary(), str(tmp_path))
    assert "No reps recorded." in (tmp_path / "report.html").read_text()
    assert not (tmp_path / "reps_per_set.png").exists()
