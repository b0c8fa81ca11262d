from __future__ import annotations

import time
from typing import Awaitable, Callable

import anyio

DEFAULT_MAX_CALLS = 30
DEFAULT_WINDOW_S = 1.0


class FixedWindowRateLimiter:
    """Caps outbound calls at ``max_calls`` per fixed window.

    The counter resets when a window ends rather than sliding, so up to
    ``2 * max_calls`` calls can start around a window boundary.
    """

    def __init__(
        self,
        *,
        max_calls: int = DEFAULT_MAX_CALLS,
        window_s: float = DEFAULT_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be positive")
        if window_s <= 0:
            raise ValueError("window_s must be positive")
        self.max_calls = max_calls
        self.window_s = window_s
        self._clock = clock
        self._sleep = sleep
        self._lock = anyio.Lock()
        self._count = 0
        self._window_end = 0.0

    @property
    def count(self) -> int:
        return self._count

    @property
    def window_end(self) -> float:
        return self._window_end

    async def acquire(self) -> None:
        # The lock stays held while waiting so callers are admitted in call order.
        async with self._lock:
            now = self._clock()
            if now >= self._window_end:
                self._count = 0
                self._window_end = now + self.window_s
            if self._count >= self.max_calls:
                delay = self._window_end - now
                if delay > 0:
                    await self._sleep(delay)
                self._count = 0
                self._window_end = self._clock() + self.window_s
            self._count += 1


_shared: FixedWindowRateLimiter | None = None


def shared_limiter() -> FixedWindowRateLimiter:
    """Process-wide limiter handed to clients that are not given their own."""
    global _shared
    if _shared is None:
        _shared = FixedWindowRateLimiter()
    return _shared


def configure_shared_limiter(
    *, max_calls: int = DEFAULT_MAX_CALLS, window_s: float = DEFAULT_WINDOW_S
) -> FixedWindowRateLimiter:
    global _shared
    _shared = FixedWindowRateLimiter(max_calls=max_calls, window_s=window_s)
    return _shared
