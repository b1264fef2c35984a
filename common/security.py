"""
SafeCart - Security Utilities
==============================
Caller identity check and sliding-window rate limiting.

NOTE: identity is resolved upstream; the engine only refuses to act without one.
"""

import logging
import math
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

from config.settings import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_MS
from common.exceptions import TooManyRequests, Unauthenticated
from common.helpers import monotonic_ms

logger = logging.getLogger("safecart.security")


# ==========================================
# Identity
# ==========================================

def require_identity(owner_id: Optional[str]) -> str:
    """Return the caller's identity, or raise Unauthenticated when there is none."""
    if owner_id is None:
        raise Unauthenticated()
    owner = str(owner_id).strip()
    if not owner:
        raise Unauthenticated()
    return owner


# ==========================================
# Rate Limiter
# ==========================================

class RateLimiter:
    """
    Sliding-window counter per action key.

    Each key keeps the timestamps (ms) of its admitted requests. Every check
    evicts the ones that fell out of the window before counting, so bursts up
    to `max_requests` are allowed inside any window and the count decays as
    old timestamps age out. Keys whose history has fully expired are swept
    at most once per window.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        clock: Callable[[], float] = monotonic_ms,
    ):
        if max_requests < 1 or window_ms < 1:
            raise ValueError("max_requests and window_ms must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep: Optional[float] = None

    def can_make_request(self, action: str = "default") -> bool:
        """
        Admit one request for `action`.
        Returns True if allowed, raises TooManyRequests with the wait time otherwise.
        """
        now = self._clock()
        self._sweep(now)
        history = self._requests[action]

        # Clean old entries
        while history and now - history[0] >= self.window_ms:
            history.popleft()

        if len(history) >= self.max_requests:
            wait = math.ceil((self.window_ms - (now - history[0])) / 1000)
            logger.warning("Rate limit hit for %s, retry in %ss", action, wait)
            raise TooManyRequests(max(wait, 1))

        history.append(now)
        return True

    def remaining(self, action: str = "default") -> int:
        now = self._clock()
        live = sum(1 for t in self._requests.get(action, ()) if now - t < self.window_ms)
        return max(self.max_requests - live, 0)

    def tracked_keys(self) -> int:
        return len(self._requests)

    def reset(self, action: str = "default"):
        self._requests.pop(action, None)

    def reset_all(self):
        self._requests.clear()

    def _sweep(self, now: float):
        """Drop every key whose newest timestamp is out of the window."""
        if self._last_sweep is not None and now - self._last_sweep < self.window_ms:
            return
        self._last_sweep = now

        stale = [key for key, history in self._requests.items()
                 if not history or now - history[-1] >= self.window_ms]
        for key in stale:
            del self._requests[key]
        if stale:
            logger.debug("Rate limiter swept %s idle keys", len(stale))
