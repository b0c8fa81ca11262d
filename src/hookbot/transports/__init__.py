from .limiter import (
    FixedWindowRateLimiter,
    configure_shared_limiter,
    shared_limiter,
)

__all__ = [
    "FixedWindowRateLimiter",
    "configure_shared_limiter",
    "shared_limiter",
]
