#!/usr/bin/env python3
"""
Push-up counter: live (webcam), offline (video file) or replay (recorded keypoints).
Usage:
  Live:    python run.py --live [--camera 0] [--debug]
  Offline: python run.py --video path/to/video.mp4
  Replay:  python run.py --replay path/to/frames.jsonl
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from pushcount.config import EngineConfig, load_config
from pushcount.events import PhaseChanged, RepCounted
from pushcount.io_stream import TARGET_FPS, video_frames
from pushcount.keypoints import frame_from_dict, frame_to_dict
from pushcount.report import write_session_report
from pushcount.session import TrackingSession

logger = logging.getLogger("pushcount.run")


def run_offline(
    video_path: str,
    output_dir: str = "outputs",
    config: EngineConfig | None = None,
    dump_keypoints: str | None = None,
) -> int:
    """
    Process a video file: pose -> session -> report. Timing follows media time.
    With dump_keypoints, every sampled frame is also written as a JSON line
    that --replay accepts.
    """
    from pushcount.pose import create_pose_detector, process_frame

    session = TrackingSession(config or load_config())
    detector = create_pose_detector()
    dump = open(dump_keypoints, "w") if dump_keypoints else None
    try:
        for frame_bgr, _, ts in video_frames(video_path, target_fps=TARGET_FPS):
            sample = process_frame(frame_bgr, detector, ts)
            if dump is not None:
                dump.write(json.dumps(frame_to_dict(sample)) + "\n")
            for event in session.process_frame(sample):
                if isinstance(event, RepCounted):
                    logger.info("offline: rep %s at %.2fs", event.total, ts)
    finally:
        if dump is not None:
            dump.close()
    total = session.end_session()
    write_session_report(session.summary(), output_dir, source="offline")
    return total


def run_replay(frames_path: str, output_dir: str = "outputs", config: EngineConfig | None = None) -> int:
    """Feed JSON-lines keypoint frames ({"keypoints": [...], "timestamp": t}) through a session."""
    session = TrackingSession(config or load_config())
    with open(frames_path) as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                frame = frame_from_dict(json.loads(line))
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning("replay: skipping line %s: %s", line_no, e)
                continue
            for event in session.process_frame(frame):
                if isinstance(event, PhaseChanged):
                    logger.debug("replay: %s (%s) at %.2fs", event.phase.value, event.feedback, frame.timestamp)
                elif isinstance(event, RepCounted):
                    logger.info("replay: rep %s at %.2fs", event.total, frame.timestamp)
    total = session.end_session()
    write_session_report(session.summary(), output_dir, source="replay")
    return total


def main() -> None:
    _root = Path(__file__).resolve().parent
    load_dotenv()
    load_dotenv(_root / ".env")

    ap = argparse.ArgumentParser(description="Push-up counter: live webcam, video file or keypoint replay")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument("--video", type=str, default=None, help="Path to video file (offline mode)")
    ap.add_argument("--replay", type=str, default=None, help="Path to JSON-lines keypoint frames")
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--fps", type=float, default=TARGET_FPS, help="Target processing rate for live mode")
    ap.add_argument("--debug", action="store_true", help="Show debug block in live mode")
    ap.add_argument("--dump-keypoints", type=str, default=None, help="Offline mode: also write keypoint frames as JSON lines")
    ap.add_argument("--output-dir", type=str, default="outputs", help="Output directory")
    ap.add_argument("--log-level", type=str, default="INFO", help="Logging level (default INFO)")
    args = ap.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    modes = [m for m in (args.live, args.video, args.replay) if m]
    if len(modes) != 1:
        print("Error: provide exactly one of --live, --video PATH or --replay PATH", file=sys.stderr)
        sys.exit(1)
    try:
        config = load_config()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.live:
        from pushcount.live import run_live_pipeline

        total = run_live_pipeline(
            camera_id=args.camera,
            target_fps=args.fps,
            output_dir=args.output_dir,
            config=config,
            debug=args.debug,
        )
    else:
        path = args.video or args.replay
        if not os.path.isfile(path):
            print(f"Error: file not found: {path}", file=sys.stderr)
            sys.exit(1)
        if args.video:
            total = run_offline(path, output_dir=args.output_dir, config=config, dump_keypoints=args.dump_keypoints)
        else:
            total = run_replay(path, output_dir=args.output_dir, config=config)
    print(f"Done. Reps: {total}. Report: {args.output_dir}/report.html")


if __name__ == "__main__":
    main()
