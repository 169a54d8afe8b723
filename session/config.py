"""引擎配置：默认阈值 + 可选 JSON 配置文件覆盖"""

import json
import logging
import math
from dataclasses import dataclass, fields

logger = logging.getLogger(__name__)

# 默认阈值（时间单位：毫秒，report_delay 为秒）
DEFAULTS = {
    "ear_threshold": 0.26,
    "head_pitch_threshold": 0.2,
    "pitch_calibration": 0.6,
    "smoothing_window": 10,
    "blink_window": 60000,
    "time_to_warning": 2000,
    "time_to_critical": 10000,
    "probation_time": 300000,
    "relapse_threshold": 3000,
    "recovery_threshold": 200,
    "recovery_score": 20,
    "report_delay": 2.5,
    "location": "Unknown Highway",
    "max_log_entries": 15,
}


# 须为正整数的配置项
_INT_KEYS = ("smoothing_window", "max_log_entries")


def coerce_value(key: str, value):
    """
    按默认值的类型转换配置项。

    Raises:
        ValueError: 类型不符或数值非法
    """
    default = DEFAULTS[key]
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ValueError(f"配置项 {key} 须为字符串: {value!r}")
        return value
    # bool 是 int 的子类，单独排除
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"配置项 {key} 须为数值: {value!r}")
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"配置项 {key} 数值非法: {value!r}")
    if key in _INT_KEYS:
        if number != int(number) or number < 1:
            raise ValueError(f"配置项 {key} 须为正整数: {value!r}")
        return int(number)
    return number


def load_config(config_path=None) -> dict:
    """从 JSON 配置文件加载阈值参数，缺失字段使用默认值。"""
    config = dict(DEFAULTS)

    if config_path is None:
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning("配置文件不存在 %s，使用默认阈值", config_path)
        return config
    except json.JSONDecodeError:
        logger.warning("配置文件格式错误 %s，使用默认阈值", config_path)
        return config

    if not isinstance(data, dict):
        logger.warning("配置文件格式错误 %s，使用默认阈值", config_path)
        return config

    # 用配置文件中的值覆盖默认值，类型不符的字段保留默认值
    for key in DEFAULTS:
        if key in data and data[key] is not None:
            try:
                config[key] = coerce_value(key, data[key])
            except ValueError as e:
                logger.warning("%s，使用默认值", e)

    return config


@dataclass(frozen=True)
class EngineConfig:
    """检测引擎的静态配置"""
    ear_threshold: float = DEFAULTS["ear_threshold"]
    head_pitch_threshold: float = DEFAULTS["head_pitch_threshold"]
    pitch_calibration: float = DEFAULTS["pitch_calibration"]
    smoothing_window: int = DEFAULTS["smoothing_window"]
    blink_window: float = DEFAULTS["blink_window"]
    time_to_warning: float = DEFAULTS["time_to_warning"]
    time_to_critical: float = DEFAULTS["time_to_critical"]
    probation_time: float = DEFAULTS["probation_time"]
    relapse_threshold: float = DEFAULTS["relapse_threshold"]
    recovery_threshold: float = DEFAULTS["recovery_threshold"]
    recovery_score: float = DEFAULTS["recovery_score"]
    report_delay: float = DEFAULTS["report_delay"]
    location: str = DEFAULTS["location"]
    max_log_entries: int = DEFAULTS["max_log_entries"]

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """忽略未知字段；已知字段按默认值类型校验，非法时抛出 ValueError"""
        names = {f.name for f in fields(cls)}
        return cls(**{k: coerce_value(k, v) for k, v in data.items() if k in names})

    @classmethod
    def from_file(cls, config_path=None) -> "EngineConfig":
        return cls.from_dict(load_config(config_path))
