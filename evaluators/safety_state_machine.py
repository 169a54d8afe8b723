"""安全状态机：NORMAL / WARNING / CRITICAL，含恢复后的观察期与复发判定"""

import logging
from typing import List

from models.data_models import SafetyEvent, SafetyState, SessionState, Transition

logger = logging.getLogger(__name__)

WARNING_MESSAGE = "WARNING: Eyes closed > 2s. Slowing down."
CRITICAL_MESSAGE = "CRITICAL: Emergency Stop Triggered."
RELAPSE_MESSAGE = "CRITICAL: Drowsiness relapse during probation!"
RECOVERY_MESSAGE = "Driver recovered. ENTERING PROBATION (5 MIN)."


class SafetyStateMachine:
    """
    每帧根据闭眼时长（毫秒）、疲劳分数和当前时间推进一次状态。

    规则按优先级依次判断，先命中者生效：
    1. 闭眼 > time_to_critical → CRITICAL
    2. 观察期内闭眼 > relapse_threshold → CRITICAL（复发）
    3. 闭眼 > time_to_warning → WARNING（已是 CRITICAL 时保持不变）
    4. 闭眼 < recovery_threshold → WARNING 恢复为 NORMAL；
       CRITICAL 仅在分数 < recovery_score 时恢复
    5. 其余情况保持原状态
    """

    def __init__(
        self,
        time_to_warning: float = 2000.0,
        time_to_critical: float = 10000.0,
        probation_time: float = 300000.0,
        relapse_threshold: float = 3000.0,
        recovery_threshold: float = 200.0,
        recovery_score: float = 20.0,
    ):
        self.time_to_warning = time_to_warning
        self.time_to_critical = time_to_critical
        self.probation_time = probation_time
        self.relapse_threshold = relapse_threshold
        self.recovery_threshold = recovery_threshold
        self.recovery_score = recovery_score
        self.session = SessionState()

    @property
    def state(self) -> SafetyState:
        return self.session.state

    @property
    def probation_active(self) -> bool:
        return self.session.probation_active

    def is_probation(self, now: float) -> bool:
        return now < self.session.probation_end_time

    def step(self, closed_ms: float, drowsiness_score: float, now: float) -> Transition:
        """
        推进一帧。

        Args:
            closed_ms: 当前闭眼时长（毫秒）
            drowsiness_score: 疲劳分数 0-100
            now: 当前时间戳（毫秒）

        Returns:
            Transition，包含前后状态、事件和是否需要上报
        """
        session = self.session
        previous = session.state
        session.probation_active = self.is_probation(now)

        events: List[SafetyEvent] = []
        next_state = previous
        relapse = False

        if closed_ms > self.time_to_critical:
            next_state = SafetyState.CRITICAL
        elif session.probation_active and closed_ms > self.relapse_threshold:
            next_state = SafetyState.CRITICAL
            if previous is not SafetyState.CRITICAL:
                relapse = True
                events.append(SafetyEvent("relapse", RELAPSE_MESSAGE, "critical"))
        elif closed_ms > self.time_to_warning:
            # CRITICAL 不会直接降级为 WARNING，必须经过恢复规则
            if previous is not SafetyState.CRITICAL:
                next_state = SafetyState.WARNING
        elif closed_ms < self.recovery_threshold:
            if previous is SafetyState.CRITICAL:
                if drowsiness_score < self.recovery_score:
                    next_state = SafetyState.NORMAL
            else:
                next_state = SafetyState.NORMAL

        if next_state is not previous:
            if previous is SafetyState.CRITICAL and next_state is SafetyState.NORMAL:
                session.probation_end_time = now + self.probation_time
                session.probation_active = True
                session.incident_reported = False
                events.append(SafetyEvent("recovery", RECOVERY_MESSAGE, "alert"))
                logger.info("驾驶员已恢复，进入观察期至 %.0f", session.probation_end_time)
            elif next_state is SafetyState.WARNING:
                events.append(SafetyEvent("warning", WARNING_MESSAGE, "alert"))
                logger.warning("进入 WARNING 状态 (闭眼 %.0f ms)", closed_ms)
            elif next_state is SafetyState.CRITICAL:
                events.append(SafetyEvent("critical", CRITICAL_MESSAGE, "critical"))
                if relapse:
                    logger.error("观察期内复发，进入 CRITICAL (闭眼 %.0f ms)", closed_ms)
                else:
                    logger.error("进入 CRITICAL 状态 (闭眼 %.0f ms)", closed_ms)
            session.state = next_state

        report_requested = False
        if session.state is SafetyState.CRITICAL and not session.incident_reported:
            session.incident_reported = True
            report_requested = True

        return Transition(
            previous=previous,
            current=session.state,
            events=tuple(events),
            report_requested=report_requested,
        )

    def reset(self):
        """会话开始时恢复初始状态"""
        self.session = SessionState()
