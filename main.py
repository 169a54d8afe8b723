"""驾驶员警觉度检测系统入口文件"""

import argparse
import logging
import sys

import cv2

from detectors.face_detector import FaceDetector
from display.renderer import DisplayRenderer
from reporting.emergency_reporter import EmergencyReporter
from session.config import EngineConfig, load_config
from session.detection_session import DetectionSession

logger = logging.getLogger(__name__)

WINDOW_TITLE = "Driver Alertness Monitor"


class DetectionSystem:
    """检测系统主程序，协调摄像头、关键点检测、检测会话与渲染。"""

    def __init__(self, config_path=None, location=None, camera_index=0, enable_report=True):
        self._cap = None
        self.camera_index = camera_index

        config = load_config(config_path)
        if location is not None:
            config["location"] = location
        self.config = EngineConfig.from_dict(config)

        self.face_detector = FaceDetector()
        reporter = EmergencyReporter() if enable_report else None
        self.session = DetectionSession(self.config, reporter=reporter)
        self.renderer = DisplayRenderer(head_pitch_threshold=self.config.head_pitch_threshold)
        self._shown_logs = set()

    def run(self):
        """启动主检测循环。"""
        self._cap = cv2.VideoCapture(self.camera_index)

        if not self._cap.isOpened():
            logger.error("无法打开摄像头 %s", self.camera_index)
            sys.exit(1)

        try:
            self._main_loop()
        finally:
            self.stop()

    def _main_loop(self):
        """视频流处理主循环，每帧同步处理完毕后再读取下一帧。"""
        while True:
            ret, frame = self._cap.read()
            if not ret:
                continue

            rendered = self.process(frame)
            cv2.imshow(WINDOW_TITLE, rendered)

            # 按 q 退出
            if cv2.waitKey(1) & 0xFF == ord("q"):
                break

    def process(self, frame):
        """处理一帧并返回渲染结果。"""
        landmarks = self.face_detector.detect(frame)
        result = self.session.process_frame(landmarks)
        sim_state = self.session.tick_simulation()
        self._echo_new_logs()
        return self.renderer.render(
            frame, landmarks, result, sim_state,
            state=self.session.state,
            probation_active=self.session.probation_active,
        )

    def _echo_new_logs(self):
        """把新的事件日志输出到控制台。"""
        for entry in reversed(self.session.event_log.entries()):
            if entry.id in self._shown_logs:
                continue
            self._shown_logs.add(entry.id)
            print(f"[{entry.timestamp}] {entry.type.upper():8s} {entry.message}")

    def stop(self):
        """释放摄像头资源、关闭所有窗口、关闭人脸检测器、结束会话。"""
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        cv2.destroyAllWindows()
        self.face_detector.close()
        self.session.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="驾驶员警觉度检测系统")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON 阈值配置文件路径",
    )
    parser.add_argument(
        "--location",
        type=str,
        default=None,
        help="紧急报告中使用的位置描述",
    )
    parser.add_argument(
        "--camera",
        type=int,
        default=0,
        help="摄像头索引",
    )
    parser.add_argument(
        "--no-report",
        action="store_true",
        help="禁用 AI 紧急报告",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="日志级别",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    system = DetectionSystem(
        config_path=args.config,
        location=args.location,
        camera_index=args.camera,
        enable_report=not args.no_report,
    )
    system.run()


if __name__ == "__main__":
    main()
