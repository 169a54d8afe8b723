"""报告派发模块：延迟后在后台线程生成报告，结果只写入事件日志"""

import logging
import threading
from typing import List

from reporting.emergency_reporter import DEFAULT_LOCATION, EmergencyReporter
from session.event_log import EventLog

logger = logging.getLogger(__name__)


class ReportDispatcher:
    """
    即发即弃地调度紧急报告，不阻塞帧循环。

    每次调度分配一个递增的事件序号；cancel_all() 取消尚未触发的定时器并推进代次，
    已在进行中的调用结束后仍会写入日志。
    """

    def __init__(self, reporter: EmergencyReporter, event_log: EventLog, delay: float = 2.5):
        self.reporter = reporter
        self.event_log = event_log
        self.delay = delay
        self._timers: List[threading.Timer] = []
        self._lock = threading.Lock()
        self._generation = 0
        self._episode = 0

    def dispatch(self, duration: float, location: str = DEFAULT_LOCATION) -> threading.Timer:
        """延迟 self.delay 秒后生成报告"""
        with self._lock:
            self._episode += 1
            episode = self._episode
            generation = self._generation
            timer = threading.Timer(
                self.delay, self._run, args=(duration, location, episode, generation)
            )
            timer.daemon = True
            self._timers.append(timer)
        logger.info("已调度第 %d 次紧急报告 (闭眼 %.1f s)", episode, duration)
        timer.start()
        return timer

    def _run(self, duration: float, location: str, episode: int, generation: int):
        report = self.reporter.generate_report(duration, location)
        with self._lock:
            stale = generation != self._generation
            self._timers = [t for t in self._timers if t.is_alive() and t is not threading.current_thread()]
        if stale:
            logger.warning("第 %d 次紧急报告在会话结束后返回", episode)
        self.event_log.add(f'\U0001F691 EMS DISPATCHED: "{report}"', "ai")

    def pending(self) -> int:
        with self._lock:
            return sum(1 for t in self._timers if t.is_alive())

    def cancel_all(self):
        """取消所有尚未触发的报告"""
        with self._lock:
            for timer in self._timers:
                timer.cancel()
            self._timers.clear()
            self._generation += 1
