"""眼睛状态分析模块，负责计算 EAR 值"""

from typing import List, Tuple

from detectors.geometry import distance, ratio


class EyeAnalyzer:
    """计算单眼与双眼平均 EAR 值"""

    def calculate_ear(self, eye_points: List[Tuple[float, ...]]) -> float:
        """
        计算单只眼睛的 EAR 值。

        公式: EAR = (|p2-p6| + |p3-p5|) / (2 * |p1-p4|)

        Args:
            eye_points: 6 个眼睛轮廓关键点，顺序为外眼角、上眼睑外侧、
                        上眼睑内侧、内眼角、下眼睑内侧、下眼睑外侧

        Returns:
            EAR 值，分母为零时返回 0.0
        """
        p1, p2, p3, p4, p5, p6 = eye_points

        vertical_1 = distance(p2, p6)
        vertical_2 = distance(p3, p5)
        horizontal = distance(p1, p4)

        return ratio(vertical_1 + vertical_2, 2.0 * horizontal)

    def analyze(self, left_eye, right_eye) -> Tuple[float, float, float]:
        """
        分析双眼，返回 (左眼 EAR, 右眼 EAR, 平均 EAR)。
        """
        left_ear = self.calculate_ear(left_eye)
        right_ear = self.calculate_ear(right_eye)
        return left_ear, right_ear, (left_ear + right_ear) / 2.0
