"""Per-client attempt limits for the login and first-user endpoints."""

import time
from collections import deque
from collections.abc import Callable
from threading import Lock

from sfstack.app_shell.config import RateLimitConfig, RateLimitWindow

Clock = Callable[[], float]


class RateLimiter:
    """Sliding-window attempt counter.

    Each key keeps the timestamps (seconds, from ``clock``) of the attempts
    still inside its window; an attempt is refused once the window holds
    ``max_attempts`` of them. Refused attempts are not recorded.
    """

    def __init__(self, limits: RateLimitConfig, clock: Clock = time.monotonic):
        self.limits = limits
        self._clock = clock
        self._attempts: dict[str, deque[float]] = {}
        self._lock = Lock()

    def hit(self, key: str, window: RateLimitWindow) -> bool:
        """Record an attempt for ``key``; False if the window is already full."""
        if window.max_attempts <= 0:
            return False

        now = self._clock()
        with self._lock:
            attempts = self._attempts.setdefault(key, deque())
            while attempts and attempts[0] <= now - window.window_seconds:
                attempts.popleft()
            if len(attempts) >= window.max_attempts:
                return False
            attempts.append(now)
            return True

    def check_login(self, client: str) -> bool:
        return self.hit(f"login:{client}", self.limits.login)

    def check_bootstrap(self, client: str) -> bool:
        return self.hit(f"bootstrap:{client}", self.limits.bootstrap)
