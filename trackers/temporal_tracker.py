"""时序跟踪模块：EAR 平滑、闭眼计时与眨眼频率统计"""

import math
from collections import deque

from models.data_models import TrackerReading, TrackerState


class TemporalTracker:
    """
    每帧调用一次 update()，维护 EAR 滑动窗口、闭眼起始时间和最近 60 秒的眨眼时间戳。

    时间单位为毫秒，输出的闭眼时长单位为秒。
    """

    def __init__(
        self,
        ear_threshold: float = 0.26,
        window_size: int = 10,
        blink_window_ms: float = 60000.0,
    ):
        self.ear_threshold = ear_threshold
        self.window_size = window_size
        self.blink_window_ms = blink_window_ms
        self.state = TrackerState(ear_history=deque(maxlen=window_size))

    def update(self, ear_avg: float, now: float) -> TrackerReading:
        """
        输入当前帧的平均 EAR 和时间戳，返回平滑后的跟踪结果。

        Args:
            ear_avg: 双眼平均 EAR，必须为非负有限数
            now: 当前时间戳（毫秒），不得早于上一帧

        Raises:
            ValueError: 输入非法
        """
        self._validate(ear_avg, now)
        state = self.state
        state.last_timestamp = now

        state.ear_history.append(ear_avg)
        smoothed_ear = sum(state.ear_history) / len(state.ear_history)

        is_closed = smoothed_ear < self.ear_threshold
        blink_recorded = False

        if is_closed:
            if state.eyes_closed_start_time is None:
                state.eyes_closed_start_time = now
            eyes_closed_duration = (now - state.eyes_closed_start_time) / 1000.0
            state.was_closed = True
        else:
            if state.was_closed:
                # 闭眼 -> 睁眼，记录一次眨眼
                state.blink_timestamps.append(now)
                state.was_closed = False
                blink_recorded = True
            state.eyes_closed_start_time = None
            eyes_closed_duration = 0.0

        return TrackerReading(
            smoothed_ear=smoothed_ear,
            eyes_closed=is_closed,
            eyes_closed_duration=eyes_closed_duration,
            blinks_per_minute=self.blinks_per_minute(now),
            blink_recorded=blink_recorded,
        )

    def blinks_per_minute(self, now: float) -> int:
        """丢弃窗口外的眨眼记录并返回窗口内的次数（窗口正好 60 秒，无需换算）"""
        self.state.blink_timestamps = [
            t for t in self.state.blink_timestamps
            if now - t < self.blink_window_ms
        ]
        return len(self.state.blink_timestamps)

    def _validate(self, ear_avg: float, now: float) -> None:
        if not math.isfinite(ear_avg) or ear_avg < 0.0:
            raise ValueError(f"EAR 值非法: {ear_avg}")
        if not math.isfinite(now):
            raise ValueError(f"时间戳非法: {now}")
        last = self.state.last_timestamp
        if last is not None and now < last:
            raise ValueError(f"时间戳倒退: {now} < {last}")

    def reset(self):
        """清空所有跟踪状态"""
        self.state = TrackerState(ear_history=deque(maxlen=self.window_size))
