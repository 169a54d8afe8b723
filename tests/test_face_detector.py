"""FaceDetector 单元测试"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from detectors.face_detector import FaceDetector
from models.data_models import (
    LEFT_EYE_INDICES,
    RIGHT_EYE_INDICES,
    LandmarkFrame,
)

PATCH_TARGET = "detectors.face_detector.mp"


def _make_fake_landmark(x: float, y: float, z: float = 0.0):
    """创建一个模拟的 MediaPipe landmark 对象"""
    lm = MagicMock()
    lm.x = x
    lm.y = y
    lm.z = z
    return lm


def _build_fake_results(num_landmarks: int = 468):
    """构建模拟的 MediaPipe FaceMesh 处理结果（归一化坐标）"""
    landmarks = []
    for i in range(num_landmarks):
        nx = (i % 100) / 100.0
        ny = (i // 100) / 100.0
        landmarks.append(_make_fake_landmark(nx, ny))

    face = MagicMock()
    face.landmark = landmarks

    results = MagicMock()
    results.multi_face_landmarks = [face]
    return results, landmarks


def _detector_with(mock_mp, results=None):
    mock_mesh = MagicMock()
    mock_mp.solutions.face_mesh.FaceMesh.return_value = mock_mesh
    if results is not None:
        mock_mesh.process.return_value = results
    return FaceDetector(), mock_mesh


class TestFaceDetectorInit:
    @patch(PATCH_TARGET)
    def test_tracks_single_face(self, mock_mp):
        _detector_with(mock_mp)
        kwargs = mock_mp.solutions.face_mesh.FaceMesh.call_args.kwargs
        assert kwargs["max_num_faces"] == 1


class TestFaceDetectorDetect:
    """测试 detect() 方法"""

    @patch(PATCH_TARGET)
    def test_returns_none_when_no_face(self, mock_mp):
        """未检测到人脸时返回 None"""
        no_face_results = MagicMock()
        no_face_results.multi_face_landmarks = None
        detector, _ = _detector_with(mock_mp, no_face_results)

        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        assert detector.detect(frame) is None

    @patch(PATCH_TARGET)
    def test_returns_landmark_frame(self, mock_mp):
        """检测到人脸时返回 LandmarkFrame"""
        results, _ = _build_fake_results()
        detector, _ = _detector_with(mock_mp, results)

        result = detector.detect(np.zeros((480, 640, 3), dtype=np.uint8))

        assert isinstance(result, LandmarkFrame)
        assert len(result.points) == 468
        assert len(result.left_eye) == 6
        assert len(result.right_eye) == 6

    @patch(PATCH_TARGET)
    def test_coordinates_stay_normalized(self, mock_mp):
        """关键点坐标保持归一化，不换算为像素"""
        results, raw = _build_fake_results()
        detector, _ = _detector_with(mock_mp, results)

        result = detector.detect(np.zeros((480, 640, 3), dtype=np.uint8))

        idx = LEFT_EYE_INDICES[0]
        assert result.left_eye[0][:2] == pytest.approx((raw[idx].x, raw[idx].y))
        idx = RIGHT_EYE_INDICES[3]
        assert result.right_eye[3][:2] == pytest.approx((raw[idx].x, raw[idx].y))

    @patch(PATCH_TARGET)
    def test_frame_converted_to_rgb(self, mock_mp):
        no_face_results = MagicMock()
        no_face_results.multi_face_landmarks = []
        detector, mesh = _detector_with(mock_mp, no_face_results)

        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        frame[..., 0] = 255  # 蓝色通道
        detector.detect(frame)

        rgb = mesh.process.call_args[0][0]
        assert rgb[0, 0, 2] == 255
        assert rgb[0, 0, 0] == 0


class TestFaceDetectorClose:
    """测试 close() 方法"""

    @patch(PATCH_TARGET)
    def test_close_releases_resources(self, mock_mp):
        """close() 应调用 FaceMesh.close()"""
        detector, mesh = _detector_with(mock_mp)
        detector.close()
        mesh.close.assert_called_once()


class TestLandmarkIndices:
    """验证关键点索引常量的正确性"""

    def test_left_eye_indices(self):
        assert LEFT_EYE_INDICES == [33, 160, 158, 133, 153, 144]

    def test_right_eye_indices(self):
        assert RIGHT_EYE_INDICES == [362, 385, 387, 263, 373, 380]
