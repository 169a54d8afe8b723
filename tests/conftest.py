import sys
import os

# Add project root to sys.path so tests can import from all modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from hypothesis import settings  # noqa: E402

from models.data_models import (  # noqa: E402
    CHIN,
    LEFT_CHEEK,
    LEFT_EYE_INDICES,
    LandmarkFrame,
    NOSE_BRIDGE,
    NOSE_TIP,
    RIGHT_CHEEK,
    RIGHT_EYE_INDICES,
)

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
# Default to dev profile
settings.load_profile("dev")

NUM_LANDMARKS = 468


def _eye_points(x0, y, ear, width=0.1):
    """构造 EAR 恰好为 ear 的 6 个眼部关键点"""
    h = ear * width / 2.0
    return [
        (x0, y),
        (x0 + width / 3, y - h),
        (x0 + 2 * width / 3, y - h),
        (x0 + width, y),
        (x0 + 2 * width / 3, y + h),
        (x0 + width / 3, y + h),
    ]


def make_landmarks(ear=0.3, right_ear=None, pitch_ratio=0.6, nose_x=0.5):
    """
    构造一帧归一化关键点。

    Args:
        ear: 左眼 EAR
        right_ear: 右眼 EAR，默认与左眼相同
        pitch_ratio: 鼻尖到下巴 / 鼻梁到下巴 的距离比
        nose_x: 鼻尖横坐标，两颊固定在 0.3 和 0.7
    """
    if right_ear is None:
        right_ear = ear
    points = [(0.5, 0.5, 0.0)] * NUM_LANDMARKS

    def put(index, point):
        points[index] = (point[0], point[1], 0.0)

    for index, point in zip(LEFT_EYE_INDICES, _eye_points(0.3, 0.35, ear)):
        put(index, point)
    for index, point in zip(RIGHT_EYE_INDICES, _eye_points(0.6, 0.35, right_ear)):
        put(index, point)

    # 鼻梁到下巴距离 0.5
    put(NOSE_BRIDGE, (0.5, 0.4))
    put(CHIN, (0.5, 0.9))
    nose_y = 0.9 - pitch_ratio * 0.5
    put(NOSE_TIP, (nose_x, nose_y))
    put(LEFT_CHEEK, (0.3, nose_y))
    put(RIGHT_CHEEK, (0.7, nose_y))

    return LandmarkFrame(points=tuple(points))


@pytest.fixture
def landmark_factory():
    return make_landmarks
