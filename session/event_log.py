"""事件日志：面向用户的会话事件记录，线程安全"""

import datetime
import threading
import uuid
from typing import List

from models.data_models import LogEntry

LOG_TYPES = ("info", "alert", "critical", "ai")


class EventLog:
    """有界事件日志，最新条目在前。报告线程与帧循环都会写入，使用锁保护。"""

    def __init__(self, max_entries: int = 15):
        self.max_entries = max_entries
        self._entries: List[LogEntry] = []
        self._lock = threading.Lock()

    def add(self, message: str, log_type: str = "info") -> LogEntry:
        """添加一条日志。log_type: info / alert / critical / ai"""
        if log_type not in LOG_TYPES:
            raise ValueError(f"未知日志类型: {log_type}")
        entry = LogEntry(
            id=uuid.uuid4().hex[:9],
            timestamp=datetime.datetime.now().strftime("%H:%M:%S"),
            message=message,
            type=log_type,
        )
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.max_entries:]
        return entry

    def entries(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)
