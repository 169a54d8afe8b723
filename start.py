"""一键启动驾驶员警觉度检测 Web 界面"""

import argparse
import logging
import os
import sys
import threading
import time
import webbrowser

ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, ROOT)

logger = logging.getLogger("start")

# (pip 包名, 导入名)
REQUIRED = [
    ("flask", "flask"),
    ("opencv-python", "cv2"),
    ("mediapipe", "mediapipe"),
    ("numpy", "numpy"),
    ("Pillow", "PIL"),
    ("google-genai", "google.genai"),
]


def find_missing(required=REQUIRED):
    """返回无法导入的 pip 包名列表"""
    missing = []
    for pkg, import_name in required:
        try:
            __import__(import_name)
        except ImportError:
            missing.append(pkg)
    return missing


def install(packages):
    import subprocess

    logger.warning("缺少依赖，正在自动安装: %s", ", ".join(packages))
    subprocess.check_call([sys.executable, "-m", "pip", "install", *packages])


def open_browser(url, delay=1.5):
    """延迟打开浏览器，等待 Flask 启动"""
    time.sleep(delay)
    webbrowser.open(url)


def main(argv=None):
    parser = argparse.ArgumentParser(description="驾驶员警觉度检测 Web 界面")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--config", default=None, help="JSON 阈值配置文件路径")
    parser.add_argument("--no-browser", action="store_true", help="不自动打开浏览器")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    os.chdir(ROOT)

    missing = find_missing()
    if missing:
        install(missing)

    if not (os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")):
        logger.warning("未设置 GEMINI_API_KEY，紧急报告将使用固定文本")

    import web_app
    from session.config import load_config

    if args.config:
        web_app.system.update_config(load_config(args.config))

    url = f"http://localhost:{args.port}"
    if not args.no_browser:
        threading.Thread(target=open_browser, args=(url,), daemon=True).start()

    logger.info("系统已启动，访问地址: %s (Ctrl+C 停止)", url)
    web_app.app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
