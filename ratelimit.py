# Orange Tools rate limiting
# Sliding window per client. In-memory, single process, injected into the API.

import threading
import time
from collections import deque


class RateLimiter:
    """Allow at most ``max_requests`` per ``window_sec`` for each key.

    ``clock`` is injectable so tests can move time by hand.
    """

    def __init__(self, max_requests: int, window_sec: float, clock=time.monotonic):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_sec <= 0:
            raise ValueError("window_sec must be positive")
        self.max_requests = max_requests
        self.window_sec = window_sec
        self._clock = clock
        self._buckets = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            self._sweep_unlocked(now)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = deque()
            elif len(bucket) >= self.max_requests:
                return False
            bucket.append(now)
            return True

    def _prune(self, key, now):
        """Drop expired timestamps; forget the key once its window is empty."""
        bucket = self._buckets.get(key)
        if bucket is None:
            return None
        while bucket and bucket[0] <= now - self.window_sec:
            bucket.popleft()
        if not bucket:
            del self._buckets[key]
            return None
        return bucket

    def _sweep_unlocked(self, now):
        for key in list(self._buckets):
            self._prune(key, now)

    def sweep(self):
        """Forget every key whose window has expired."""
        now = self._clock()
        with self._lock:
            self._sweep_unlocked(now)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._buckets)

    def retry_after(self, key: str) -> float:
        """Seconds until ``key`` may make another request (0 if it may now)."""
        now = self._clock()
        with self._lock:
            bucket = self._prune(key, now)
            if not bucket or len(bucket) < self.max_requests:
                return 0.0
            return max(0.0, bucket[0] + self.window_sec - now)

    def reset(self):
        with self._lock:
            self._buckets.clear()
