"""
End-of-session outputs: session_summary.json, report.html and a reps-per-set plot.
"""
from __future__ import annotations

import html
import json
import logging
import os
from dataclasses import asdict
from typing import Any

from .session import SessionSummary, format_duration

logger = logging.getLogger(__name__)


def _plot_sets(reps_per_set: list[int], path: str) -> bool:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig = plt.figure(figsize=(6, 4))
    plt.bar(range(1, len(reps_per_set) + 1), reps_per_set)
    plt.xlabel("Set")
    plt.ylabel("Reps")
    plt.title("Reps per set")
    fig.savefig(path, dpi=100)
    plt.close(fig)
    return True


def write_session_report(summary: SessionSummary, output_dir: str, source: str = "live") -> str:
    """Write summary JSON, HTML report and plot into output_dir. Returns the report path."""
    os.makedirs(output_dir, exist_ok=True)
    data: dict[str, Any] = asdict(summary)
    data["source"] = source
    summary_path = os.path.join(output_dir, "session_summary.json")
    with open(summary_path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(
        "report: source=%s total=%s sets=%s active=%.1fs",
        source, summary.total_reps, summary.reps_per_set, summary.active_seconds,
    )

    plot_name = "reps_per_set.png"
    has_plot = False
    if summary.reps_per_set:
        try:
            has_plot = _plot_sets(summary.reps_per_set, os.path.join(output_dir, plot_name))
        except (ImportError, OSError, RuntimeError) as e:
            logger.warning("report: could not write %s: %s", plot_name, e)

    pace = f"{summary.avg_sec_per_rep:.2f}s" if summary.avg_sec_per_rep else "--"
    lines = [
        "<!DOCTYPE html>",
        "<html><head><meta charset='utf-8'><title>Push-up Report</title></head><body>",
        "<h1>Push-up Session Report</h1>",
        f"<p><b>Source:</b> {html.escape(source)}</p>",
        f"<p><b>Started:</b> {html.escape(summary.start_time)} | <b>Ended:</b> {html.escape(summary.end_time)}</p>",
        f"<p><b>Total reps:</b> {summary.total_reps}</p>",
        f"<p><b>Active time:</b> {format_duration(summary.active_seconds)}</p>",
        f"<p><b>Average time between reps:</b> {pace}</p>",
        "<h2>Sets</h2>",
    ]
    if summary.reps_per_set:
        lines.append("<table border='1'><tr><th>Set</th><th>Reps</th></tr>")
        for i, n in enumerate(summary.reps_per_set, start=1):
            lines.append(f'<tr><td data-label="Set">{i}</td><td data-label="Reps">{n}</td></tr>')
        lines.append("</table>")
    else:
        lines.append("<p>No reps recorded.</p>")
    if has_plot:
        lines.append(f"<img src='{plot_name}' alt='Reps per set'>")
    lines.append("</body></html>")

    report_path = os.path.join(output_dir, "report.html")
    with open(report_path, "w") as f:
        f.write("\n".join(lines))
    return report_path
