"""Login attempt throttling.

The in-memory limiter is process-local and resets on restart; a deployment
running several workers needs a shared ``RateLimiter`` implementation.
"""
import abc
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

DEFAULT_SWEEP_THRESHOLD = 1024


class RateLimiter(abc.ABC):
    """Counts attempts per key inside a sliding window."""

    @abc.abstractmethod
    def hit(self, key: str) -> bool:
        """Record an attempt for ``key``; return False once the limit is exceeded."""

    @abc.abstractmethod
    def reset(self, key: str) -> None:
        """Forget every attempt recorded for ``key``."""


class InMemoryRateLimiter(RateLimiter):
    """Sliding-window limiter keyed by client address.

    Once the table holds ``sweep_threshold`` keys, keys whose attempts have
    all left the window are swept out. A sweep runs at most once per window,
    or sooner when the table has doubled since the last one.
    """

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._clock = clock
        self._sweep_threshold = max(1, sweep_threshold)
        self._next_sweep = self._sweep_threshold
        self._last_sweep = clock()
        self._attempts: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)

    def _prune(self, attempts: Deque[float], now: float) -> None:
        while attempts and now - attempts[0] >= self._window:
            attempts.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._attempts):
            attempts = self._attempts[key]
            self._prune(attempts, now)
            if not attempts:
                del self._attempts[key]
        # Whatever survives is live; the next size-triggered sweep waits for the table to double.
        self._next_sweep = max(self._sweep_threshold, 2 * len(self._attempts))
        self._last_sweep = now

    def _should_sweep(self, now: float) -> bool:
        size = len(self._attempts)
        if size < self._sweep_threshold:
            return False
        return size >= self._next_sweep or now - self._last_sweep >= self._window

    def hit(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            if self._should_sweep(now):
                self._sweep(now)
            attempts = self._attempts.get(key)
            if attempts is not None:
                self._prune(attempts, now)
            else:
                attempts = self._attempts[key] = deque()
            if len(attempts) >= self._max_attempts:
                return False
            attempts.append(now)
            return True

    def reset(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)
