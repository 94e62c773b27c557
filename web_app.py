from __future__ import annotations

import asyncio
import base64
import concurrent.futures
import json
import logging
import shutil
import tempfile
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Optional

# Ensure session and rep logging is visible when running under uvicorn
logging.getLogger("pushcount").setLevel(logging.INFO)

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

import cv2
import numpy as np

from run import run_offline
from pushcount.config import load_config
from pushcount.keypoints import FrameSample, frame_from_dict
from pushcount.report import write_session_report
from pushcount.session import TrackingSession

logger = logging.getLogger("pushcount.web")

app = FastAPI(title="Push-up Counter")

# Background analysis jobs (job_id -> {status, result, created})
_JOB_STORE: dict[str, dict] = {}
_JOB_LOCK = threading.Lock()
_MAX_JOBS = 100

# One worker so frames of a connection are processed strictly in order
_LIVE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_pose")


def _run_analysis_background(job_id: str, upload_path: str, job_dir: str) -> None:
    try:
        run_offline(upload_path, output_dir=job_dir)
        report_path = Path(job_dir) / "report.html"
        report_html = _extract_body(report_path.read_text()) if report_path.exists() else ""
        with _JOB_LOCK:
            _JOB_STORE[job_id]["status"] = "done"
            _JOB_STORE[job_id]["result"] = report_html
    except Exception as e:
        logger.exception("analyze: job %s failed", job_id)
        with _JOB_LOCK:
            _JOB_STORE[job_id]["status"] = "error"
            _JOB_STORE[job_id]["result"] = str(e)
    finally:
        shutil.rmtree(job_dir, ignore_errors=True)


def _extract_body(html: str) -> str:
    lower = html.lower()
    if "<body" in lower and "</body>" in lower:
        start = lower.find("<body")
        start = lower.find(">", start) + 1
        end = lower.rfind("</body>")
        return html[start:end].strip()
    return html


def _page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1, viewport-fit=cover" />
    <title>{title}</title>
    <style>
      :root {{ --bg: #07090d; --panel: #0f1319; --text: #f0f4f8; --muted: #94a3b8; --accent: #06b6d4; --border: #1e293b; }}
      * {{ box-sizing: border-box; margin: 0; padding: 0; }}
      body {{ font-family: -apple-system, BlinkMacSystemFont, sans-serif; background: var(--bg); color: var(--text); padding: 16px; }}
      .card {{ background: var(--panel); border: 1px solid var(--border); border-radius: 12px; padding: 16px; margin-bottom: 16px; }}
      .muted {{ color: var(--muted); }}
      .big {{ font-size: 56px; font-weight: 700; }}
      .feedback {{ font-size: 28px; color: var(--accent); min-height: 36px; }}
      video {{ width: 100%; max-width: 480px; border-radius: 12px; transform: scaleX(-1); }}
      button {{ background: var(--accent); color: #001; border: 0; border-radius: 8px; padding: 10px 14px; margin: 4px; font-weight: 600; }}
      button:disabled {{ opacity: 0.4; }}
      progress {{ width: 100%; }}
      pre {{ font-size: 12px; color: var(--muted); }}
    </style>
  </head>
  <body>
    {body}
  </body>
</html>"""


def _render_homepage(report_html: Optional[str] = None) -> HTMLResponse:
    report_block = f"<div class='card'><h3>Latest report</h3>{report_html}</div>" if report_html else ""
    body = """
    <div class="card">
      <h1>Push-up Counter</h1>
      <p class="muted">Place your phone on the floor facing you, hold the top position for 3 seconds to calibrate, then go.</p>
    </div>
    __REPORT__
    <div class="card">
      <video id="preview" autoplay playsinline muted></video>
      <div class="big" id="total">0</div>
      <div class="muted" id="sets">Set 1: 0</div>
      <div class="feedback" id="feedback"></div>
      <progress id="calib" max="100" value="0"></progress>
      <div>
        <button id="start">Start</button>
        <button id="pause" disabled>Pause</button>
        <button id="recal" disabled>Recalibrate</button>
        <button id="debug" disabled>Debug</button>
        <button id="stop" disabled>Finish</button>
      </div>
      <pre id="debugInfo"></pre>
    </div>
    <div class="card">
      <h3>Analyze a video</h3>
      <form action="/analyze" method="post" enctype="multipart/form-data">
        <input type="file" name="video" accept="video/*" />
        <button type="submit">Upload</button>
      </form>
    </div>
    <script>
      const $ = (id) => document.getElementById(id);
      const capture = document.createElement("canvas");
      let ws = null, stream = null, timer = null, paused = false, debug = false;
      const send = (obj) => { if (ws && ws.readyState === 1) ws.send(JSON.stringify(obj)); };

      function render(msg) {
        const s = msg.snapshot;
        if (!s) return;
        $("total").textContent = s.total_session_reps;
        $("sets").textContent = "Set " + (s.completed_sets.length + 1) + ": " + s.reps_in_current_set +
          (s.completed_sets.length ? "  (" + s.completed_sets.join(" / ") + ")" : "") + "  " + s.active_time;
        $("feedback").textContent = s.feedback;
        $("calib").value = s.calibration_progress;
        $("debugInfo").textContent = s.debug ? JSON.stringify(s.debug) : "";
        for (const e of msg.events || []) {
          if (e.type === "rep_counted" && navigator.vibrate) navigator.vibrate([50, 30]);
        }
      }

      $("start").onclick = async () => {
        stream = await navigator.mediaDevices.getUserMedia({ video: { facingMode: "user" }, audio: false });
        $("preview").srcObject = stream;
        ws = new WebSocket((location.protocol === "https:" ? "wss://" : "ws://") + location.host + "/ws/live");
        ws.onmessage = (ev) => {
          const msg = JSON.parse(ev.data);
          if (msg.type === "summary") { document.open(); document.write(msg.html); document.close(); return; }
          render(msg);
        };
        ws.onopen = () => {
          timer = setInterval(() => {
            if (paused) return;
            const v = $("preview");
            if (!v.videoWidth) return;
            capture.width = 480; capture.height = Math.round(480 * v.videoHeight / v.videoWidth);
            capture.getContext("2d").drawImage(v, 0, 0, capture.width, capture.height);
            send({ type: "frame", image: capture.toDataURL("image/jpeg", 0.6) });
          }, 50);
        };
        for (const id of ["pause", "recal", "debug", "stop"]) $(id).disabled = false;
        $("start").disabled = true;
      };
      $("pause").onclick = () => {
        paused = !paused;
        send({ type: paused ? "pause" : "resume" });
        $("pause").textContent = paused ? "Resume" : "Pause";
      };
      $("recal").onclick = () => send({ type: "recalibrate" });
      $("debug").onclick = () => { debug = !debug; send({ type: "debug", enabled: debug }); };
      $("stop").onclick = () => {
        clearInterval(timer);
        send({ type: "stop" });
        if (stream) stream.getTracks().forEach((t) => t.stop());
      };
    </script>
    """
    return HTMLResponse(_page("Push-up Counter", body.replace("__REPORT__", report_block)))


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    return _render_homepage()


@app.post("/analyze")
def analyze(video: UploadFile = File(...)) -> HTMLResponse:
    if not video.filename:
        raise HTTPException(status_code=400, detail="No video uploaded.")
    job_id = uuid.uuid4().hex
    job_dir = tempfile.mkdtemp(prefix=f"pushcount_{job_id}_")
    upload_path = str(Path(job_dir) / Path(video.filename).name)
    with open(upload_path, "wb") as f:
        shutil.copyfileobj(video.file, f)
    with _JOB_LOCK:
        if len(_JOB_STORE) >= _MAX_JOBS:
            oldest = min(_JOB_STORE, key=lambda k: _JOB_STORE[k]["created"])
            _JOB_STORE.pop(oldest, None)
        _JOB_STORE[job_id] = {"status": "pending", "result": None, "created": time.time()}
    threading.Thread(
        target=_run_analysis_background, args=(job_id, upload_path, job_dir), daemon=True
    ).start()
    logger.info("analyze: job %s queued (%s)", job_id, video.filename)
    return HTMLResponse(
        _page(
            "Analyzing…",
            f"<div class='card'><h3>Analyzing your video</h3>"
            f"<p class='muted'>Refresh <a href='/analyze/result/{job_id}'>this link</a> in a minute.</p></div>",
        ),
        status_code=202,
    )


@app.get("/analyze/result/{job_id}", response_class=HTMLResponse)
def analyze_result(job_id: str) -> HTMLResponse:
    with _JOB_LOCK:
        job = _JOB_STORE.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Unknown job.")
    status = job.get("status", "pending")
    result = job.get("result")
    if status == "pending":
        return HTMLResponse(_page("Analyzing…", "<div class='card'>Still analyzing…</div>"), status_code=202)
    if status == "error":
        err_msg = (result or "Analysis failed.").replace("<", "&lt;").replace(">", "&gt;")
        return _render_homepage(f'<div class="card"><h3>Analysis failed</h3><p class="muted">{err_msg}</p></div>')
    return _render_homepage(result)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def _decode_image(image_data: str) -> Optional[np.ndarray]:
    if image_data.startswith("data:"):
        image_data = image_data.split(",", 1)[1]
    try:
        img_bytes = base64.b64decode(image_data, validate=True)
    except ValueError:
        return None
    return cv2.imdecode(np.frombuffer(img_bytes, np.uint8), cv2.IMREAD_COLOR)


class LiveConnection:
    """Per-socket state: one TrackingSession plus the lazily created pose detector."""

    def __init__(self) -> None:
        self.session = TrackingSession(load_config())
        self.debug = False
        self._detector = None

    def control(self, kind: str, payload: dict[str, Any]) -> Optional[list]:
        """Apply a control message. Returns the events it caused, or None for unknown kinds."""
        events: list = []
        if kind == "pause":
            self.session.pause()
        elif kind == "resume":
            self.session.resume()
        elif kind == "recalibrate":
            events = self.session.recalibrate()
        elif kind == "debug":
            self.debug = bool(payload.get("enabled", not self.debug))
        else:
            return None
        return events

    def frame_from_image(self, frame_bgr: np.ndarray, timestamp: float) -> FrameSample:
        from pushcount.pose import create_pose_detector, process_frame

        if self._detector is None:
            self._detector = create_pose_detector()
        return process_frame(frame_bgr, self._detector, timestamp)

    def update(self, events: list) -> dict[str, Any]:
        return {
            "type": "update",
            "events": [e.to_dict() for e in events],
            "snapshot": self.session.snapshot(debug=self.debug).to_dict(),
        }


@app.websocket("/ws/live")
async def live_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    logger.info("live: session started")
    conn = LiveConnection()
    session = conn.session
    frames = 0
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                logger.warning("live: dropping non-JSON message")
                continue
            if not isinstance(payload, dict):
                continue
            kind = payload.get("type", "frame")

            if kind == "stop":
                total = session.end_session()
                logger.info("live: stop received, total=%s frames=%s", total, frames)
                with tempfile.TemporaryDirectory() as tmpdir:
                    report_path = write_session_report(session.summary(), tmpdir, source="live-web")
                    report_html = Path(report_path).read_text()
                await websocket.send_text(json.dumps({
                    "type": "summary",
                    "total": total,
                    "snapshot": session.snapshot().to_dict(),
                    "html": _page("Push-up Report", _extract_body(report_html)),
                }))
                await websocket.close()
                return

            control_events = conn.control(kind, payload)
            if control_events is not None:
                await websocket.send_text(json.dumps(conn.update(control_events)))
                continue

            if kind == "keypoints":
                try:
                    ts = payload.get("timestamp")
                    sample = frame_from_dict(payload, timestamp=None if ts is not None else time.perf_counter())
                except ValueError as e:
                    logger.warning("live: bad keypoints payload: %s", e)
                    continue
            elif kind == "frame":
                image_data = payload.get("image")
                if not image_data:
                    continue
                frame_bgr = _decode_image(image_data)
                if frame_bgr is None:
                    logger.warning("live: undecodable image frame")
                    continue
                ts = time.perf_counter()
                sample = await asyncio.get_running_loop().run_in_executor(
                    _LIVE_EXECUTOR, conn.frame_from_image, frame_bgr, ts
                )
            else:
                logger.warning("live: unknown message type %r", kind)
                continue

            events = session.process_frame(sample)
            frames += 1
            if frames % 100 == 0:
                logger.info("live: frame %s (total=%s)", frames, session.counters.total_session_reps)
            await websocket.send_text(json.dumps(conn.update(events)))
    except WebSocketDisconnect:
        logger.info(
            "live: client disconnected (frames=%s, total=%s)", frames, session.counters.total_session_reps
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
