"""车辆行为仿真：根据安全状态调整车速、双闪和鸣笛"""

from models.data_models import SafetyState, SimulationState

MAX_SPEED = 90.0       # km/h
WARNING_SPEED = 45.0   # km/h
CRITICAL_SPEED = 0.0   # km/h

TICK_MS = 16.0  # 仿真节拍（约 60 Hz）

# 状态 -> (目标车速, 双闪, 鸣笛)
_TARGETS = {
    SafetyState.NORMAL: (MAX_SPEED, False, False),
    SafetyState.WARNING: (WARNING_SPEED, True, False),
    SafetyState.CRITICAL: (CRITICAL_SPEED, True, True),
}


class VehicleSimulator:
    """
    车速按指数方式逼近目标车速。

    每个 TICK_MS 节拍逼近一次；step() 接收实际经过的时间，折算为节拍数，
    因此减速曲线和里程与调用频率无关。
    """

    def __init__(self, initial_speed: float = MAX_SPEED):
        self.state = SimulationState(
            speed=initial_speed, hazards_on=False, honking=False, distance_traveled=0.0,
        )

    def step(self, safety_state: SafetyState, elapsed_ms: float = TICK_MS) -> SimulationState:
        target_speed, hazards, honk = _TARGETS[safety_state]
        ticks = max(0.0, elapsed_ms) / TICK_MS

        # 紧急状态下减速更快
        lerp_factor = 0.1 if safety_state is SafetyState.CRITICAL else 0.02
        prev = self.state
        remaining = (1.0 - lerp_factor) ** ticks
        new_speed = target_speed + (prev.speed - target_speed) * remaining

        self.state = SimulationState(
            speed=max(0.0, new_speed),
            hazards_on=hazards,
            honking=honk,
            distance_traveled=prev.distance_traveled + prev.speed * ticks / 3600,
        )
        return self.state

    def reset(self):
        self.state = SimulationState(
            speed=MAX_SPEED, hazards_on=False, honking=False, distance_traveled=0.0,
        )
