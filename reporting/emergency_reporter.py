"""紧急报告生成模块，调用 Gemini 生成发给急救中心的短信文本"""

import logging
import os

logger = logging.getLogger(__name__)

MODEL_NAME = "gemini-2.5-flash"
DEFAULT_LOCATION = "Unknown Highway"

MISSING_KEY_REPORT = "API Key missing. Cannot generate AI report."
EMPTY_REPORT = "Emergency reported. Driver unresponsive."
FALLBACK_REPORT = "Error generating AI report. System Alerting EMS manually."

_PROMPT_TEMPLATE = """
You are an automated vehicle safety system.
The driver has been unresponsive (eyes closed) for {duration:.1f} seconds.
The vehicle has performed an emergency stop at {location}.

Generate a concise, professional emergency text message (max 2 sentences) to be sent to emergency services (911/EMS).
Include the status code 'CRITICAL-DRIVER-UNRESPONSIVE'.
"""


def _load_genai():
    """延迟加载 google-genai，处理导入错误"""
    try:
        from google import genai
        return genai
    except ImportError as e:
        logger.warning("无法导入 google-genai，AI 报告功能不可用")
        raise ImportError(
            "google-genai 未安装，请运行 pip install google-genai 安装"
        ) from e


def build_prompt(duration: float, location: str = DEFAULT_LOCATION) -> str:
    return _PROMPT_TEMPLATE.format(duration=duration, location=location)


class EmergencyReporter:
    """生成紧急报告文本，任何失败都返回固定的回退文本，不向外抛出异常"""

    def __init__(self, api_key=None, client=None, model: str = MODEL_NAME):
        """
        Args:
            api_key: Gemini API Key，默认读取 GEMINI_API_KEY / GOOGLE_API_KEY 环境变量
            client: 已构造的 genai.Client（测试时注入）
            model: 模型名称
        """
        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        self.model = model
        self._client = client

    def _get_client(self):
        if self._client is None:
            genai = _load_genai()
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate_report(self, duration: float, location: str = DEFAULT_LOCATION) -> str:
        """
        生成紧急报告。

        Args:
            duration: 闭眼时长（秒）
            location: 停车位置描述

        Returns:
            报告文本或回退文本
        """
        if not self.api_key and self._client is None:
            return MISSING_KEY_REPORT

        try:
            client = self._get_client()
            response = client.models.generate_content(
                model=self.model,
                contents=build_prompt(duration, location),
            )
        except Exception:
            logger.exception("Gemini 报告生成失败")
            return FALLBACK_REPORT

        return response.text or EMPTY_REPORT
