"""Registry of questions the realtime processor has already handled."""

import logging
import threading
from collections import OrderedDict
from typing import Tuple

logger = logging.getLogger(__name__)

ProcessedMessageKey = Tuple[str, str]


class ProcessedMessageRegistry:
    """Remember ``(channel, ts)`` pairs so each question is answered once.

    Keys are kept for the lifetime of the process unless ``max_size`` is
    set, in which case the oldest keys are evicted first.
    """

    def __init__(self, max_size: int = 0):
        self._max_size = max_size
        self._keys: OrderedDict[ProcessedMessageKey, None] = OrderedDict()
        self._lock = threading.RLock()

    @property
    def max_size(self) -> int:
        return self._max_size

    def mark_if_new(self, channel: str, ts: str) -> bool:
        """Record the key and return True, or False when already processed."""
        key = (channel, ts)
        with self._lock:
            if key in self._keys:
                return False
            self._keys[key] = None
            if self._max_size:
                while len(self._keys) > self._max_size:
                    self._keys.popitem(last=False)
        return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
