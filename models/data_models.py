"""核心数据模型定义"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Sequence, Tuple

Point = Tuple[float, ...]

# MediaPipe FaceMesh 关键点索引（与上游关键点检测器约定一致）
LEFT_EYE_INDICES = [33, 160, 158, 133, 153, 144]
RIGHT_EYE_INDICES = [362, 385, 387, 263, 373, 380]

NOSE_TIP = 1
CHIN = 152
NOSE_BRIDGE = 168
LEFT_CHEEK = 234
RIGHT_CHEEK = 454


@dataclass(frozen=True)
class LandmarkFrame:
    """单帧人脸关键点，坐标为归一化图像坐标 [0,1]×[0,1]"""
    points: Sequence[Point]

    @property
    def left_eye(self) -> List[Point]:
        return [self.points[i] for i in LEFT_EYE_INDICES]

    @property
    def right_eye(self) -> List[Point]:
        return [self.points[i] for i in RIGHT_EYE_INDICES]

    @property
    def nose_tip(self) -> Point:
        return self.points[NOSE_TIP]

    @property
    def chin(self) -> Point:
        return self.points[CHIN]

    @property
    def nose_bridge(self) -> Point:
        return self.points[NOSE_BRIDGE]

    @property
    def left_cheek(self) -> Point:
        return self.points[LEFT_CHEEK]

    @property
    def right_cheek(self) -> Point:
        return self.points[RIGHT_CHEEK]


@dataclass(frozen=True)
class SignalSample:
    """单帧信号：双眼 EAR 与头部姿态代理值"""
    ear_left: float
    ear_right: float
    ear_avg: float
    pitch: float
    yaw: float


@dataclass
class TrackerState:
    """时序跟踪器的可变状态，生命周期与检测会话一致"""
    ear_history: Deque[float] = field(default_factory=lambda: deque(maxlen=10))
    eyes_closed_start_time: Optional[float] = None
    blink_timestamps: List[float] = field(default_factory=list)
    was_closed: bool = False
    last_timestamp: Optional[float] = None


@dataclass(frozen=True)
class TrackerReading:
    """时序跟踪器单帧输出"""
    smoothed_ear: float
    eyes_closed: bool
    eyes_closed_duration: float
    blinks_per_minute: int
    blink_recorded: bool


@dataclass(frozen=True)
class DetectionMetrics:
    """单帧检测指标快照"""
    ear: float
    eyes_closed_duration: float
    blink_count: int
    blinks_per_minute: int
    head_pitch: float
    head_yaw: float
    drowsiness_score: float
    fps: float

    def to_dict(self) -> dict:
        return {
            "ear": round(self.ear, 4),
            "eyes_closed_duration": round(self.eyes_closed_duration, 2),
            "blink_count": self.blink_count,
            "blinks_per_minute": self.blinks_per_minute,
            "head_pitch": round(self.head_pitch, 4),
            "head_yaw": round(self.head_yaw, 4),
            "drowsiness_score": round(self.drowsiness_score, 1),
            "fps": round(self.fps, 1),
        }


class SafetyState(str, Enum):
    """安全状态"""
    NORMAL = "NORMAL"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass
class SessionState:
    """会话级安全状态：当前状态 + 观察期"""
    state: SafetyState = SafetyState.NORMAL
    probation_end_time: float = 0.0
    probation_active: bool = False
    incident_reported: bool = False


@dataclass(frozen=True)
class SafetyEvent:
    """状态机事件，kind: warning / critical / relapse / recovery"""
    kind: str
    message: str
    log_type: str


@dataclass(frozen=True)
class Transition:
    """状态机单步结果"""
    previous: SafetyState
    current: SafetyState
    events: Tuple[SafetyEvent, ...] = ()
    report_requested: bool = False

    @property
    def changed(self) -> bool:
        return self.previous is not self.current


@dataclass(frozen=True)
class FrameResult:
    """单帧处理结果，供渲染、仿真和 API 使用"""
    metrics: DetectionMetrics
    state: SafetyState
    probation_active: bool
    transition: Transition


@dataclass(frozen=True)
class SimulationState:
    """车辆行为仿真状态"""
    speed: float
    hazards_on: bool
    honking: bool
    distance_traveled: float


@dataclass(frozen=True)
class LogEntry:
    """事件日志条目，type: info / alert / critical / ai"""
    id: str
    timestamp: str
    message: str
    type: str


@dataclass
class CalibrationResult:
    """阈值校准结果"""
    optimal_ear_threshold: float
    ear_accuracy: float
    ear_recall: float
    pitch_calibration: float
    ear_distribution: dict
    pitch_distribution: dict
