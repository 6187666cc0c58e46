"""Bounded in-memory lookup cache with entry expiry"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, Tuple, TypeVar

from .core import constants

logger = logging.getLogger("amwhub.cache")

V = TypeVar("V")


class LookupCache(Generic[V]):
    """Least-recently-used cache whose entries expire after ttl_seconds.

    Channel ids never change, so the expiry only bounds how long a stale
    handle-to-channel mapping can survive a channel rename.
    """

    def __init__(
        self,
        max_entries: int = constants.LOOKUP_CACHE_MAX_ENTRIES,
        ttl_seconds: float = constants.LOOKUP_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            stored_at, value = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None

            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)

            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted} from lookup cache")

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
