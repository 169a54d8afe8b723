"""检测会话：持有单个会话的全部可变状态，逐帧驱动信号→状态流水线"""

import logging
import threading
import time
from typing import Optional

from detectors.signal_extractor import SignalExtractor
from evaluators.drowsiness_scorer import DrowsinessScorer
from evaluators.safety_state_machine import SafetyStateMachine
from models.data_models import (
    DetectionMetrics,
    FrameResult,
    LandmarkFrame,
    SafetyState,
    SimulationState,
)
from reporting.report_dispatcher import ReportDispatcher
from session.config import EngineConfig
from session.event_log import EventLog
from simulation.vehicle_simulator import TICK_MS, VehicleSimulator
from trackers.temporal_tracker import TemporalTracker

logger = logging.getLogger(__name__)

CONTACTING_MESSAGE = "System: Contacting AI Emergency Services..."


def _now_ms() -> float:
    # 单调时钟，系统时间回拨不影响闭眼计时
    return time.monotonic() * 1000.0


class DetectionSession:
    """
    单一控制器，按 关键点 → 信号提取 → 时序跟踪 → 评分 → 状态机 的顺序单向处理每一帧。

    不允许帧处理重叠：调用方须在上一帧返回后再提交下一帧。
    帧处理、仿真推进、重置与重新配置共用一把锁，Web 请求线程不会在帧处理中途替换组件。
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        reporter=None,
        event_log: Optional[EventLog] = None,
    ):
        """
        Args:
            config: 引擎配置，默认使用内置阈值
            reporter: EmergencyReporter，为 None 时不派发报告
            event_log: 事件日志，默认新建
        """
        self.config = config or EngineConfig()
        self.event_log = event_log or EventLog(max_entries=self.config.max_log_entries)
        self._lock = threading.RLock()
        self.dispatcher = None
        if reporter is not None:
            self.dispatcher = ReportDispatcher(
                reporter, self.event_log, delay=self.config.report_delay,
            )
        self._build()

    def _build(self):
        cfg = self.config
        self.extractor = SignalExtractor(pitch_calibration=cfg.pitch_calibration)
        self.tracker = TemporalTracker(
            ear_threshold=cfg.ear_threshold,
            window_size=cfg.smoothing_window,
            blink_window_ms=cfg.blink_window,
        )
        self.scorer = DrowsinessScorer(head_pitch_threshold=cfg.head_pitch_threshold)
        self.state_machine = SafetyStateMachine(
            time_to_warning=cfg.time_to_warning,
            time_to_critical=cfg.time_to_critical,
            probation_time=cfg.probation_time,
            relapse_threshold=cfg.relapse_threshold,
            recovery_threshold=cfg.recovery_threshold,
            recovery_score=cfg.recovery_score,
        )
        self.simulator = VehicleSimulator()
        self._last_tick: Optional[float] = None
        self.latest: Optional[FrameResult] = None

    @property
    def state(self) -> SafetyState:
        return self.state_machine.state

    @property
    def probation_active(self) -> bool:
        return self.state_machine.probation_active

    def process_frame(self, landmarks: Optional[LandmarkFrame], now: Optional[float] = None) -> Optional[FrameResult]:
        """
        处理一帧。

        Args:
            landmarks: 单帧关键点；None 表示未检测到人脸
            now: 当前时间戳（毫秒，单调时钟），默认取 time.monotonic()

        Returns:
            FrameResult；未检测到人脸或输入非法时返回 None，会话状态保持不变
        """
        if landmarks is None:
            return None

        if now is None:
            now = _now_ms()

        with self._lock:
            return self._process(landmarks, now)

    def _process(self, landmarks: LandmarkFrame, now: float) -> Optional[FrameResult]:
        started = time.perf_counter()

        sample = self.extractor.extract(landmarks)
        try:
            reading = self.tracker.update(sample.ear_avg, now)
        except ValueError as e:
            logger.warning("跳过非法帧: %s", e)
            return None

        score = self.scorer.score(
            reading.smoothed_ear,
            sample.pitch,
            reading.eyes_closed_duration,
            reading.blinks_per_minute,
        )
        transition = self.state_machine.step(
            reading.eyes_closed_duration * 1000.0, score, now,
        )

        elapsed = time.perf_counter() - started
        metrics = DetectionMetrics(
            ear=reading.smoothed_ear,
            eyes_closed_duration=reading.eyes_closed_duration,
            blink_count=reading.blinks_per_minute,
            blinks_per_minute=reading.blinks_per_minute,
            head_pitch=sample.pitch,
            head_yaw=sample.yaw,
            drowsiness_score=score,
            fps=1.0 / elapsed if elapsed > 0 else 0.0,
        )

        for event in transition.events:
            self.event_log.add(event.message, event.log_type)

        if transition.report_requested:
            self._request_report(metrics.eyes_closed_duration)

        self.latest = FrameResult(
            metrics=metrics,
            state=transition.current,
            probation_active=self.state_machine.probation_active,
            transition=transition,
        )
        return self.latest

    def _request_report(self, duration: float):
        self.event_log.add(CONTACTING_MESSAGE, "info")
        if self.dispatcher is None:
            logger.info("未配置报告服务，跳过紧急报告")
            return
        self.dispatcher.dispatch(duration, self.config.location)

    def tick_simulation(self, now: Optional[float] = None) -> SimulationState:
        """
        按当前安全状态推进车辆仿真，步长取距上次推进的实际时间，与帧率无关。

        Args:
            now: 当前时间戳（毫秒，单调时钟）；首次推进按一个仿真节拍计
        """
        if now is None:
            now = _now_ms()
        with self._lock:
            if self._last_tick is None:
                elapsed = TICK_MS
            else:
                elapsed = max(0.0, now - self._last_tick)
            self._last_tick = now
            return self.simulator.step(self.state, elapsed)

    def reset(self):
        """开始新会话：清空跟踪器、状态机、仿真和日志，取消未触发的报告"""
        with self._lock:
            if self.dispatcher is not None:
                self.dispatcher.cancel_all()
                self.dispatcher.delay = self.config.report_delay
            self.event_log.max_entries = self.config.max_log_entries
            self.event_log.clear()
            self._build()

    def reconfigure(self, config: EngineConfig):
        """以新配置开始新会话"""
        with self._lock:
            self.config = config
            self.reset()

    def close(self):
        """结束会话"""
        with self._lock:
            if self.dispatcher is not None:
                self.dispatcher.cancel_all()
