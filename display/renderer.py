"""界面渲染模块 - 在视频帧上绘制眼部轮廓、指标、安全状态和紧急提示。"""

from typing import Optional

import cv2
import numpy as np

from models.data_models import (
    FrameResult,
    LandmarkFrame,
    SafetyState,
    SimulationState,
)


def format_value(v: float) -> str:
    """格式化浮点数为两位小数字符串。"""
    return f"{v:.2f}"


class DisplayRenderer:
    """在视频帧上绘制检测结果、安全状态和警告。"""

    # 状态颜色 (BGR)
    STATE_COLORS = {
        SafetyState.NORMAL: (129, 185, 16),
        SafetyState.WARNING: (11, 158, 245),
        SafetyState.CRITICAL: (68, 68, 239),
    }

    # 状态文字映射
    _STATE_TEXT = {
        SafetyState.NORMAL: "正常",
        SafetyState.WARNING: "警告",
        SafetyState.CRITICAL: "危险",
    }

    def __init__(self, font_path: str = "SimHei", head_pitch_threshold: float = 0.2):
        """初始化中文字体，字体不存在时回退到 OpenCV 默认英文字体。"""
        self.head_pitch_threshold = head_pitch_threshold
        self._pil_font = None
        self._pil_font_large = None
        self._use_pil = False

        try:
            from PIL import ImageFont

            font = self._try_load_font(font_path)
            if font is not None:
                self._pil_font = font
                self._pil_font_large = ImageFont.truetype(font.path, 48)
                self._use_pil = True
        except (ImportError, OSError):
            self._use_pil = False

    @staticmethod
    def _try_load_font(font_path: str):
        """尝试加载字体文件，返回 PIL ImageFont 或 None。"""
        from PIL import ImageFont

        candidates = [
            font_path,
            "/usr/share/fonts/truetype/simhei/SimHei.ttf",
            "/usr/share/fonts/SimHei.ttf",
            "C:\\Windows\\Fonts\\simhei.ttf",
            "/System/Library/Fonts/STHeiti Medium.ttc",
        ]
        for path in candidates:
            try:
                return ImageFont.truetype(path, 20)
            except (OSError, IOError):
                continue

        return None

    def render(
        self,
        frame: np.ndarray,
        landmarks: Optional[LandmarkFrame],
        result: Optional[FrameResult],
        sim_state: Optional[SimulationState] = None,
        state: SafetyState = SafetyState.NORMAL,
        probation_active: bool = False,
    ) -> np.ndarray:
        """
        渲染检测结果到视频帧，返回渲染后的帧图像。

        result 为 None 表示本帧未检测到人脸，此时会话状态不变，
        安全状态、观察期标记和紧急提示按 state / probation_active 继续绘制。
        """
        output = frame.copy()

        if landmarks is not None:
            self._draw_eyes(output, landmarks)

        if result is None:
            lines = ["No face"]
            color = (0, 255, 255)
        else:
            state = result.state
            probation_active = result.probation_active
            metrics = result.metrics
            if metrics.head_pitch > self.head_pitch_threshold:
                self._draw_head_tilt(output)
            lines = [
                f"EAR: {format_value(metrics.ear)}",
                f"Closed: {metrics.eyes_closed_duration:.1f}s",
                f"Blinks/min: {metrics.blinks_per_minute}",
                f"Score: {metrics.drowsiness_score:.0f}/100",
            ]
            color = (255, 255, 255)

        if sim_state is not None:
            lines.append(f"Speed: {sim_state.speed:.0f} km/h")
        self._draw_lines(output, lines, x=10, y_start=60, color=color)

        self._draw_state(output, state)

        if probation_active:
            h, w = output.shape[:2]
            self._draw_lines(output, ["PROBATION"], x=w - 180, y_start=60, color=(247, 85, 168))

        if state is SafetyState.CRITICAL:
            self._draw_emergency(output)

        return output

    @staticmethod
    def _draw_eyes(frame: np.ndarray, landmarks: LandmarkFrame) -> None:
        """绘制双眼轮廓（绿色折线），关键点为归一化坐标。"""
        h, w = frame.shape[:2]
        for eye in (landmarks.left_eye, landmarks.right_eye):
            pts = np.array([(int(p[0] * w), int(p[1] * h)) for p in eye], dtype=np.int32)
            cv2.polylines(frame, [pts], True, (129, 185, 16), 2)

    @staticmethod
    def _draw_head_tilt(frame: np.ndarray) -> None:
        """顶部红色警示条。"""
        h, w = frame.shape[:2]
        overlay = frame.copy()
        cv2.rectangle(overlay, (0, 0), (w, 20), (68, 68, 239), -1)
        cv2.addWeighted(overlay, 0.5, frame, 0.5, 0, dst=frame)
        cv2.putText(
            frame, "HEAD TILT DETECTED", (10, 45),
            cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2,
        )

    def _draw_state(self, frame: np.ndarray, state: SafetyState) -> None:
        """在右上角绘制安全状态。"""
        h, w = frame.shape[:2]
        color = self.STATE_COLORS[state]
        if self._use_pil:
            text = f"状态: {self._STATE_TEXT[state]}"
        else:
            text = state.value
        self._draw_lines(frame, [text], x=w - 180, y_start=30, color=color)

    def _draw_emergency(self, frame: np.ndarray) -> None:
        """在画面中央显示红色大字体紧急停车提示。"""
        h, w = frame.shape[:2]

        if self._use_pil:
            from PIL import Image, ImageDraw

            warning = "紧急停车！"
            img_pil = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
            draw = ImageDraw.Draw(img_pil)
            bbox = draw.textbbox((0, 0), warning, font=self._pil_font_large)
            x = (w - (bbox[2] - bbox[0])) // 2
            y = (h - (bbox[3] - bbox[1])) // 2
            draw.text((x, y), warning, font=self._pil_font_large, fill=(239, 68, 68))
            frame[:] = cv2.cvtColor(np.array(img_pil), cv2.COLOR_RGB2BGR)
        else:
            warning = "EMERGENCY STOP"
            font_scale = 1.5
            thickness = 3
            (text_w, text_h), _ = cv2.getTextSize(
                warning, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness
            )
            cv2.putText(
                frame, warning, ((w - text_w) // 2, (h + text_h) // 2),
                cv2.FONT_HERSHEY_SIMPLEX, font_scale, (68, 68, 239), thickness,
            )

    def _draw_lines(
        self,
        frame: np.ndarray,
        lines: list,
        x: int,
        y_start: int,
        color: tuple,
    ) -> None:
        """绘制多行文字，有中文字体时使用 PIL（BGR color -> RGB fill）。"""
        if not self._use_pil:
            y = y_start
            for line in lines:
                cv2.putText(
                    frame, line, (x, y),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2,
                )
                y += 28
            return

        from PIL import Image, ImageDraw

        img_pil = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(img_pil)
        fill = (color[2], color[1], color[0])
        y = y_start
        for line in lines:
            draw.text((x, y), line, font=self._pil_font, fill=fill)
            y += 28
        frame[:] = cv2.cvtColor(np.array(img_pil), cv2.COLOR_RGB2BGR)
