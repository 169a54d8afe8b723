"""几何基础函数"""

import math


def distance(p1, p2) -> float:
    """两点在图像平面 (x, y) 上的欧氏距离，忽略 z 分量"""
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def ratio(numerator: float, denominator: float) -> float:
    """安全除法，分母为零时返回 0.0"""
    if denominator == 0.0:
        return 0.0
    return numerator / denominator
