"""疲劳评分模块"""


class DrowsinessScorer:
    """
    将平滑 EAR、头部俯仰、闭眼时长和眨眼频率合成为 0-100 的疲劳分数。

    四项相互独立、可同时触发：
    - 平滑 EAR < 0.28: +30
    - pitch > 低头阈值: +40
    - 闭眼时长（秒）* 20，不设上限，最后统一截断
    - 每分钟眨眼 < 10: +10
    """

    def __init__(
        self,
        head_pitch_threshold: float = 0.2,
        low_ear_threshold: float = 0.28,
        low_blink_rate: int = 10,
    ):
        self.head_pitch_threshold = head_pitch_threshold
        self.low_ear_threshold = low_ear_threshold
        self.low_blink_rate = low_blink_rate

    def score(
        self,
        smoothed_ear: float,
        pitch: float,
        eyes_closed_duration: float,
        blinks_per_minute: float,
    ) -> float:
        """
        计算疲劳分数。

        Args:
            smoothed_ear: 平滑后的 EAR
            pitch: 头部俯仰代理值
            eyes_closed_duration: 当前闭眼时长（秒）
            blinks_per_minute: 最近 60 秒眨眼次数

        Returns:
            [0, 100] 之间的分数
        """
        score = 0.0

        if smoothed_ear < self.low_ear_threshold:
            score += 30
        if pitch > self.head_pitch_threshold:
            score += 40
        score += eyes_closed_duration * 20
        if blinks_per_minute < self.low_blink_rate:
            score += 10

        return float(max(0.0, min(score, 100.0)))
