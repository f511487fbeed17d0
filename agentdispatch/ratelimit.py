"""
Per-caller fixed-window rate limiting.

One RateLimiter per protected entry point; limiters never share state.
The counter resets at the window boundary, so bursts are possible at
window edges. Checks are O(1) and never evict; a separate sweep removes
expired windows.
"""

import math
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from agentdispatch.exceptions import ConfigurationError, RateLimitedError
from agentdispatch.logging import get_logger

logger = get_logger("ratelimit")


@dataclass
class RateLimitConfig:
    """Ceiling and window for one entry point."""

    limit: int = 10
    window_seconds: float = 600.0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ConfigurationError(f"Rate limit must be at least 1, got {self.limit}")
        if self.window_seconds <= 0:
            raise ConfigurationError(
                f"Rate limit window must be positive, got {self.window_seconds}"
            )


@dataclass
class RateLimitWindow:
    """Counter state for one caller key."""

    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    def retry_after(self, now: float) -> int:
        return max(1, math.ceil(self.reset_at - now))

    def headers(self) -> dict[str, str]:
        """Standard X-RateLimit-* response headers."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }


class RateLimiter:
    """
    Fixed-window counter keyed by caller identity.

    Example:
        ```python
        limiter = RateLimiter(RateLimitConfig(limit=10, window_seconds=600), name="dispatch")
        if not limiter.check(caller.caller_id):
            ...
        ```
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        name: str = "default",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or RateLimitConfig()
        self.name = name
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def hit(self, key: str) -> RateLimitDecision:
        """
        Count one call for ``key`` and decide whether it is admitted.

        Denied calls do not advance the counter.
        """
        limit = self.config.limit
        window = self.config.window_seconds
        now = self._clock()

        with self._lock:
            state = self._windows.get(key)

            if state is None or now >= state.window_start + window:
                state = RateLimitWindow(count=1, window_start=now)
                self._windows[key] = state
                return RateLimitDecision(True, limit, limit - 1, now + window)

            reset_at = state.window_start + window
            if state.count >= limit:
                return RateLimitDecision(False, limit, 0, reset_at)

            state.count += 1
            return RateLimitDecision(True, limit, limit - state.count, reset_at)

    def check(self, key: str) -> bool:
        """Return True when the call is admitted."""
        return self.hit(key).allowed

    def enforce(self, key: str) -> RateLimitDecision:
        """
        Admit the call or raise.

        Raises:
            RateLimitedError: When ``key`` has exhausted its window
        """
        decision = self.hit(key)
        if not decision.allowed:
            logger.info("Rate limit hit on %s for %s", self.name, key)
            raise RateLimitedError(
                "RATE_LIMITED",
                f"Rate limit exceeded: {decision.limit} requests per "
                f"{self.config.window_seconds:g}s",
                decision.retry_after(self._clock()),
            )
        return decision

    def sweep(self) -> int:
        """Remove expired windows. Returns the number removed."""
        now = self._clock()
        window = self.config.window_seconds
        with self._lock:
            expired = [
                key for key, state in self._windows.items()
                if now >= state.window_start + window
            ]
            for key in expired:
                del self._windows[key]
        if expired:
            logger.debug("Swept %d expired windows from %s", len(expired), self.name)
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


class RateLimitSweeper:
    """Background thread that periodically sweeps a set of limiters."""

    def __init__(self, limiters: list[RateLimiter], interval: float = 300.0) -> None:
        self.limiters = limiters
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="agentdispatch-ratelimit-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            for limiter in self.limiters:
                limiter.sweep()


def client_key_from_headers(headers: Mapping[str, str]) -> str:
    """
    Derive a rate-limit key from proxy headers.

    Uses the first x-forwarded-for hop, then x-real-ip, then
    cf-connecting-ip; "unknown" when none are present.
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    forwarded_for = lowered.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    for name in ("x-real-ip", "cf-connecting-ip"):
        value = lowered.get(name)
        if value:
            return value.strip()

    return "unknown"
