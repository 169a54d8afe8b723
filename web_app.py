"""Flask Web 前端 - 驾驶员警觉度检测系统"""

import logging
import threading
import time

import cv2
from flask import Flask, Response, jsonify, render_template, request

from detectors.face_detector import FaceDetector
from display.renderer import DisplayRenderer
from reporting.emergency_reporter import EmergencyReporter
from session.config import DEFAULTS, EngineConfig
from session.detection_session import DetectionSession

logger = logging.getLogger(__name__)

app = Flask(__name__, template_folder="web/templates")


class WebDetectionSystem:
    """Web 版检测系统，后台线程跑帧循环，支持 MJPEG 视频流推送和实时数据 API。"""

    def __init__(self, config=None, reporter=None):
        self._cap = None
        self._thread = None
        self._running = False
        self._lock = threading.Lock()
        self._latest_frame = None
        self._latest_data = self._empty_data()
        self.face_detector = None
        self.config = config or EngineConfig()
        self.session = DetectionSession(self.config, reporter=reporter)
        self.renderer = DisplayRenderer(head_pitch_threshold=self.config.head_pitch_threshold)

    @staticmethod
    def _empty_data():
        return {
            "face_detected": False,
            "state": "NORMAL",
            "probation_active": False,
            "metrics": None,
            "simulation": None,
        }

    def start(self):
        """启动摄像头和处理线程。"""
        if self._running:
            return True
        self._cap = cv2.VideoCapture(0)
        if not self._cap.isOpened():
            self.session.event_log.add("无法打开摄像头", "critical")
            return False
        if self.face_detector is None:
            self.face_detector = FaceDetector()
        self._running = True
        self.session.event_log.add("System initialized. Camera started.", "info")
        self._thread = threading.Thread(target=self._process_loop, daemon=True)
        self._thread.start()
        return True

    def stop(self):
        """停止检测并结束当前会话。"""
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        self._cap = None
        self.session.close()
        self.session.event_log.add("System stopped.", "info")

    def _process_loop(self):
        """后台处理循环，帧处理串行执行，读不到帧时直接丢弃。"""
        while self._running:
            if not self._cap or not self._cap.isOpened():
                break
            ret, frame = self._cap.read()
            if not ret:
                continue
            self.process(frame)

    def process(self, frame):
        """处理一帧并更新最新数据与 JPEG 帧。"""
        landmarks = self.face_detector.detect(frame)
        result = self.session.process_frame(landmarks)
        sim_state = self.session.tick_simulation()
        rendered = self.renderer.render(
            frame, landmarks, result, sim_state,
            state=self.session.state,
            probation_active=self.session.probation_active,
        )

        data = {
            "face_detected": result is not None,
            "state": self.session.state.value,
            "probation_active": self.session.probation_active,
            "metrics": result.metrics.to_dict() if result is not None else None,
            "simulation": {
                "speed": round(sim_state.speed, 1),
                "hazards_on": sim_state.hazards_on,
                "honking": sim_state.honking,
                "distance_traveled": round(sim_state.distance_traveled, 3),
            },
        }

        ok, jpeg = cv2.imencode(".jpg", rendered, [cv2.IMWRITE_JPEG_QUALITY, 80])
        with self._lock:
            self._latest_data = data
            if ok:
                self._latest_frame = jpeg.tobytes()
        return data

    def get_logs(self):
        return [
            {"id": e.id, "timestamp": e.timestamp, "message": e.message, "type": e.type}
            for e in self.session.event_log.entries()
        ]

    def get_frame(self):
        with self._lock:
            return self._latest_frame

    def get_data(self):
        with self._lock:
            return dict(self._latest_data)

    def update_config(self, data):
        """
        动态更新阈值配置，并以新配置开始新会话。

        Raises:
            ValueError: 配置项类型或数值非法，此时配置与会话均不变
        """
        merged = {key: getattr(self.config, key) for key in DEFAULTS}
        for key in DEFAULTS:
            if key in data and data[key] is not None:
                merged[key] = data[key]
        config = EngineConfig.from_dict(merged)
        self.config = config
        self.session.reconfigure(config)
        self.renderer.head_pitch_threshold = self.config.head_pitch_threshold
        with self._lock:
            self._latest_data = self._empty_data()

    def reset(self):
        self.session.reset()
        with self._lock:
            self._latest_data = self._empty_data()


# 全局检测系统实例
system = WebDetectionSystem(reporter=EmergencyReporter())


# ---- Flask 路由 ----

@app.route("/")
def index():
    return render_template("index.html")


@app.route("/api/start", methods=["POST"])
def api_start():
    ok = system.start()
    return jsonify({"success": ok, "message": "摄像头启动成功" if ok else "无法打开摄像头"})


@app.route("/api/stop", methods=["POST"])
def api_stop():
    system.stop()
    return jsonify({"success": True, "message": "检测已停止"})


@app.route("/api/reset", methods=["POST"])
def api_reset():
    system.reset()
    return jsonify({"success": True, "message": "会话已重置"})


@app.route("/api/data")
def api_data():
    return jsonify(system.get_data())


@app.route("/api/config", methods=["POST"])
def api_config():
    data = request.get_json(force=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "message": "配置格式错误"}), 400
    try:
        system.update_config(data)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify({"success": True, "message": "配置已更新"})


@app.route("/api/logs")
def api_logs():
    return jsonify({"logs": system.get_logs()})


@app.route("/video_feed")
def video_feed():
    def generate():
        while True:
            frame = system.get_frame()
            if frame is not None:
                yield (b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + frame + b"\r\n")
            time.sleep(0.03)
    return Response(generate(), mimetype="multipart/x-mixed-replace; boundary=frame")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
