"""头部姿态分析模块，使用 2D 几何比例近似头部俯仰与偏航"""

from typing import Tuple

from detectors.geometry import distance, ratio
from models.data_models import LandmarkFrame

# 正视前方时的经验标定常数
DEFAULT_PITCH_CALIBRATION = 0.6


class HeadPoseAnalyzer:
    """
    用鼻尖、鼻梁、下巴和两颊关键点的距离比例近似头部姿态。

    结果不是标定过的角度：pitch 越大表示越低头，yaw 在 [0, 1]，0 为正对镜头。
    """

    def __init__(self, pitch_calibration: float = DEFAULT_PITCH_CALIBRATION):
        self.pitch_calibration = pitch_calibration

    def pitch_ratio(self, landmarks: LandmarkFrame) -> float:
        """鼻尖到下巴距离与鼻梁到下巴距离之比，低头时变小"""
        return ratio(
            distance(landmarks.nose_tip, landmarks.chin),
            distance(landmarks.nose_bridge, landmarks.chin),
        )

    def estimate_pose(self, landmarks: LandmarkFrame) -> Tuple[float, float]:
        """
        估计头部姿态代理值。

        Args:
            landmarks: 单帧人脸关键点

        Returns:
            (pitch, yaw)
        """
        pitch = self.pitch_calibration - self.pitch_ratio(landmarks)

        left_dist = distance(landmarks.left_cheek, landmarks.nose_tip)
        right_dist = distance(landmarks.right_cheek, landmarks.nose_tip)
        total_width = left_dist + right_dist
        if total_width == 0.0:
            yaw = 0.0
        else:
            yaw = abs(left_dist / total_width - 0.5) * 2

        return pitch, yaw
