"""Per-user throttle for Day chat, with TTL eviction.

Owned by the service process and handed to the app; the engine never sees it.
"""

import logging
import os
import threading
import time
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

ENV_CHAT_WINDOW_SECONDS = "NIGHT_PROTOCOL_CHAT_WINDOW_SECONDS"
ENV_CHAT_MAX_MESSAGES = "NIGHT_PROTOCOL_CHAT_MAX_MESSAGES"

DEFAULT_WINDOW_SECONDS = 10.0
DEFAULT_MAX_MESSAGES = 5


class ChatRateLimiter:
    """Sliding-window counter keyed by caller. Expired hits are dropped on every check."""

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if window_seconds <= 0 or max_messages < 1:
            raise ValueError("window_seconds must be > 0 and max_messages >= 1")
        self._window = window_seconds
        self._max = max_messages
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls) -> "ChatRateLimiter":
        window = os.environ.get(ENV_CHAT_WINDOW_SECONDS)
        max_messages = os.environ.get(ENV_CHAT_MAX_MESSAGES)
        return cls(
            window_seconds=float(window) if window else DEFAULT_WINDOW_SECONDS,
            max_messages=int(max_messages) if max_messages else DEFAULT_MAX_MESSAGES,
        )

    def allow(self, key: str) -> bool:
        """Record a hit for key and return True, or return False if the window is full."""
        now = self._clock()
        with self._lock:
            self._evict(now)
            hits = self._hits.setdefault(key, [])
            if len(hits) >= self._max:
                logger.debug("Chat rate limit hit: %s", key)
                return False
            hits.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def _evict(self, now: float) -> None:
        cutoff = now - self._window
        for key in list(self._hits):
            fresh = [t for t in self._hits[key] if t > cutoff]
            if fresh:
                self._hits[key] = fresh
            else:
                del self._hits[key]
