"""几何函数、EyeAnalyzer、HeadPoseAnalyzer 与 SignalExtractor 单元测试"""

import math

import pytest

from detectors.eye_analyzer import EyeAnalyzer
from detectors.geometry import distance, ratio
from detectors.head_pose_analyzer import HeadPoseAnalyzer
from detectors.signal_extractor import SignalExtractor
from models.data_models import SignalSample


class TestGeometry:
    def test_distance_2d(self):
        assert distance((0.0, 0.0), (3.0, 4.0)) == pytest.approx(5.0)

    def test_distance_ignores_z(self):
        assert distance((0.0, 0.0, 9.0), (3.0, 4.0, -2.0)) == pytest.approx(5.0)

    def test_distance_symmetric_and_zero(self):
        assert distance((0.2, 0.7), (0.2, 0.7)) == 0.0
        assert distance((0.1, 0.2), (0.4, 0.6)) == distance((0.4, 0.6), (0.1, 0.2))

    def test_ratio(self):
        assert ratio(1.0, 4.0) == 0.25

    def test_ratio_zero_denominator(self):
        assert ratio(1.0, 0.0) == 0.0


class TestEyeAnalyzer:
    def test_open_eye(self):
        # 宽 4，两条竖直距离均为 2 → EAR = 4 / 8 = 0.5
        points = [(0, 0), (1, 1), (3, 1), (4, 0), (3, -1), (1, -1)]
        assert EyeAnalyzer().calculate_ear(points) == pytest.approx(0.5)

    def test_closed_eye_collapses_to_zero(self):
        points = [(0, 0), (1, 0), (3, 0), (4, 0), (3, 0), (1, 0)]
        assert EyeAnalyzer().calculate_ear(points) == 0.0

    def test_degenerate_width(self):
        points = [(1, 1)] * 6
        assert EyeAnalyzer().calculate_ear(points) == 0.0

    def test_scale_invariant(self):
        points = [(0, 0), (1, 1), (3, 1), (4, 0), (3, -1), (1, -1)]
        scaled = [(x * 0.01, y * 0.01) for x, y in points]
        analyzer = EyeAnalyzer()
        assert analyzer.calculate_ear(scaled) == pytest.approx(analyzer.calculate_ear(points))

    def test_analyze_averages_both_eyes(self, landmark_factory):
        frame = landmark_factory(ear=0.2, right_ear=0.4)
        left, right, avg = EyeAnalyzer().analyze(frame.left_eye, frame.right_eye)
        assert left == pytest.approx(0.2)
        assert right == pytest.approx(0.4)
        assert avg == pytest.approx(0.3)


class TestHeadPoseAnalyzer:
    def test_neutral_pose(self, landmark_factory):
        pitch, yaw = HeadPoseAnalyzer().estimate_pose(landmark_factory(pitch_ratio=0.6))
        assert pitch == pytest.approx(0.0)
        assert yaw == pytest.approx(0.0)

    def test_head_down_increases_pitch(self, landmark_factory):
        analyzer = HeadPoseAnalyzer()
        neutral, _ = analyzer.estimate_pose(landmark_factory(pitch_ratio=0.6))
        down, _ = analyzer.estimate_pose(landmark_factory(pitch_ratio=0.3))
        assert down == pytest.approx(0.3)
        assert down > neutral

    def test_custom_calibration(self, landmark_factory):
        pitch, _ = HeadPoseAnalyzer(pitch_calibration=0.5).estimate_pose(
            landmark_factory(pitch_ratio=0.5)
        )
        assert pitch == pytest.approx(0.0)

    def test_yaw_turned_half(self, landmark_factory):
        _, yaw = HeadPoseAnalyzer().estimate_pose(landmark_factory(nose_x=0.6))
        assert yaw == pytest.approx(0.5)

    def test_yaw_symmetric(self, landmark_factory):
        analyzer = HeadPoseAnalyzer()
        _, left = analyzer.estimate_pose(landmark_factory(nose_x=0.4))
        _, right = analyzer.estimate_pose(landmark_factory(nose_x=0.6))
        assert left == pytest.approx(right)

    def test_yaw_fully_turned(self, landmark_factory):
        _, yaw = HeadPoseAnalyzer().estimate_pose(landmark_factory(nose_x=0.7))
        assert yaw == pytest.approx(1.0)


class TestSignalExtractor:
    def test_returns_signal_sample(self, landmark_factory):
        sample = SignalExtractor().extract(landmark_factory(ear=0.3))
        assert isinstance(sample, SignalSample)
        assert sample.ear_left == pytest.approx(0.3)
        assert sample.ear_right == pytest.approx(0.3)
        assert sample.ear_avg == pytest.approx(0.3)
        assert sample.pitch == pytest.approx(0.0)
        assert sample.yaw == pytest.approx(0.0)

    def test_values_are_finite(self, landmark_factory):
        sample = SignalExtractor().extract(landmark_factory(ear=0.05, pitch_ratio=0.2, nose_x=0.65))
        for value in (sample.ear_avg, sample.pitch, sample.yaw):
            assert math.isfinite(value)
        assert 0.0 <= sample.yaw <= 1.0

    def test_pitch_calibration_forwarded(self, landmark_factory):
        sample = SignalExtractor(pitch_calibration=0.7).extract(landmark_factory(pitch_ratio=0.6))
        assert sample.pitch == pytest.approx(0.1)
