"""Operational counters"""

import logging
import threading
from typing import Dict

logger = logging.getLogger("amwhub.metrics")


class Metrics:
    """Named in-process counters, snapshotted into the heartbeat and /metrics"""

    def __init__(self):
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, key: str, n: int = 1) -> int:
        with self._lock:
            value = self._counters.get(key, 0) + n
            self._counters[key] = value
        logger.debug(f"[metrics] {key} -> {value}")
        return value

    def get(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def dump(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)
