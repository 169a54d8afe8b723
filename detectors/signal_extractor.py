"""信号提取模块：由单帧关键点得到 EAR 与头部姿态信号"""

from detectors.eye_analyzer import EyeAnalyzer
from detectors.head_pose_analyzer import DEFAULT_PITCH_CALIBRATION, HeadPoseAnalyzer
from models.data_models import LandmarkFrame, SignalSample


class SignalExtractor:
    """组合眼睛分析与头部姿态分析，无状态"""

    def __init__(self, pitch_calibration: float = DEFAULT_PITCH_CALIBRATION):
        self.eye_analyzer = EyeAnalyzer()
        self.head_pose_analyzer = HeadPoseAnalyzer(pitch_calibration=pitch_calibration)

    def extract(self, landmarks: LandmarkFrame) -> SignalSample:
        """
        提取单帧信号。调用方需保证已检测到人脸。

        Returns:
            SignalSample(ear_left, ear_right, ear_avg, pitch, yaw)
        """
        ear_left, ear_right, ear_avg = self.eye_analyzer.analyze(
            landmarks.left_eye, landmarks.right_eye
        )
        pitch, yaw = self.head_pose_analyzer.estimate_pose(landmarks)

        return SignalSample(
            ear_left=ear_left,
            ear_right=ear_right,
            ear_avg=ear_avg,
            pitch=pitch,
            yaw=yaw,
        )
