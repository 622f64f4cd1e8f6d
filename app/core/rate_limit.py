from __future__ import annotations

from slowapi import Limiter

from app.core.config import settings
from app.core.usage_gate import client_key

limiter = Limiter(key_func=client_key, enabled=settings.rate_limit_enabled)


def rate_limit():
    """Per-minute burst limit for endpoints outside the daily AI quota."""
    if settings.rate_limit_enabled:
        return limiter.limit(settings.rate_limit)

    def decorator(func):
        return func

    return decorator
