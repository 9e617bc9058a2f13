"""
Outbound call resilience: fixed-window rate limiting and bounded retry.

Usage:
    from services.tracker.resilience import FixedWindowRateLimiter, RetryExecutor
"""

from __future__ import annotations

from services.tracker.resilience.rate_limiter import FixedWindowRateLimiter
from services.tracker.resilience.retry import RetryExecutor, is_retryable_status

__all__ = ["FixedWindowRateLimiter", "RetryExecutor", "is_retryable_status"]
