"""阈值校准模块单元测试"""

import json
import math

import pytest

from calibration.threshold_calibrator import (
    ThresholdCalibrator,
    compute_stats,
)
from session.config import DEFAULTS, load_config


def _calibrator_with_data():
    calibrator = ThresholdCalibrator()
    calibrator._ear_data = [
        (0.30, "normal"),
        (0.35, "normal"),
        (0.25, "normal"),
        (0.10, "closed"),
        (0.12, "closed"),
        (0.08, "closed"),
    ]
    calibrator._pitch_ratios = [0.58, 0.62, 0.60]
    return calibrator


class TestComputeStats:
    """测试 compute_stats 辅助函数"""

    def test_basic_values(self):
        values = [1.0, 2.0, 3.0, 4.0, 5.0]
        result = compute_stats(values)
        assert result["mean"] == pytest.approx(3.0)
        assert result["min"] == 1.0
        assert result["max"] == 5.0
        expected_std = math.sqrt(sum((x - 3.0) ** 2 for x in values) / 5)
        assert result["std"] == pytest.approx(expected_std)

    def test_single_value(self):
        result = compute_stats([42.0])
        assert result["mean"] == 42.0
        assert result["std"] == 0.0


class TestComputeStatistics:
    """测试 ThresholdCalibrator.compute_statistics()"""

    def test_ear_and_pitch_statistics(self):
        stats = _calibrator_with_data().compute_statistics()

        assert stats["ear"]["normal"]["mean"] == pytest.approx(0.3)
        assert stats["ear"]["closed"]["min"] == 0.08
        assert stats["ear"]["closed"]["max"] == 0.12
        assert stats["pitch_ratio"]["mean"] == pytest.approx(0.6)

    def test_empty_data(self):
        stats = ThresholdCalibrator().compute_statistics()
        assert stats == {"ear": {}, "pitch_ratio": {}}


class TestOptimizeThresholds:
    def test_separable_data(self):
        result = _calibrator_with_data().optimize_thresholds()
        assert 0.08 < result.optimal_ear_threshold < 0.25
        assert result.ear_accuracy >= 5 / 6
        assert result.ear_recall >= 2 / 3
        assert result.pitch_calibration == pytest.approx(0.6)

    def test_no_data_keeps_defaults(self):
        result = ThresholdCalibrator().optimize_thresholds()
        assert result.optimal_ear_threshold == DEFAULTS["ear_threshold"]
        assert result.pitch_calibration == DEFAULTS["pitch_calibration"]
        assert result.ear_accuracy == 0.0

    def test_single_class_keeps_default_threshold(self):
        calibrator = ThresholdCalibrator()
        calibrator._ear_data = [(0.3, "normal"), (0.32, "normal")]
        result = calibrator.optimize_thresholds()
        assert result.optimal_ear_threshold == DEFAULTS["ear_threshold"]


class TestExportConfig:
    def test_exported_file_loads_as_config(self, tmp_path):
        calibrator = _calibrator_with_data()
        output = tmp_path / "out" / "calibrated.json"
        calibrator.export_config(str(output))

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["calibration_info"]["ear_samples"] == 6
        assert data["calibration_info"]["neutral_samples"] == 3

        config = load_config(str(output))
        assert config["ear_threshold"] == pytest.approx(data["ear_threshold"])
        assert config["pitch_calibration"] == pytest.approx(0.6)
        assert "calibration_info" not in config


class TestLoadDataset:
    def test_invalid_path(self, tmp_path):
        with pytest.raises(ValueError, match="数据集路径无效"):
            ThresholdCalibrator().load_dataset(str(tmp_path / "missing"))
