from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, Request, Response

from app.core.config import settings
from app.core.errors import ConfigurationError, QuotaExceededError
from app.core.usage_store import UsageStatus, UsageStore

logger = logging.getLogger(__name__)

UPGRADE_FEATURES = (
    "Unlimited resume analysis",
    "Unlimited email improvements",
    "Priority processing",
    "Advanced features",
)


def upgrade_offer() -> dict[str, Any]:
    return {
        "message": "Upgrade to unlimited usage",
        "price": settings.upgrade_price,
        "features": list(UPGRADE_FEATURES),
    }


def client_key(request: Request) -> str:
    if settings.trust_x_forwarded_for:
        forwarded_for = request.headers.get("x-forwarded-for", "").strip()
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_usage_store(request: Request) -> UsageStore:
    store = getattr(request.app.state, "usage_store", None)
    if store is None:
        raise ConfigurationError("Usage tracking is not available", code="usage_store_unavailable")
    return store


def _quota_exceeded(usage: UsageStatus, message: str) -> QuotaExceededError:
    return QuotaExceededError(message, usage=usage.to_dict(), upgrade=upgrade_offer())


def enforce_usage_quota(
    request: Request,
    response: Response,
    store: UsageStore = Depends(get_usage_store),
) -> UsageStatus | None:
    """Admit the request if the client still has free uses today and record one use.

    Quota failures are reported as 429. Any other failure while evaluating the
    quota lets the request through.
    """
    client = client_key(request)
    try:
        usage = store.status(client)
        if not usage.can_use:
            denial = _quota_exceeded(
                usage,
                f"You have reached your daily limit of {usage.limit} free uses. Please upgrade to continue.",
            )
        else:
            result = store.increment(client)
            if result.success:
                response.headers["X-Usage-Remaining"] = str(result.remaining)
                response.headers["X-Usage-Limit-Reached"] = "true" if result.limit_reached else "false"
                return store.status(client)
            denial = _quota_exceeded(
                UsageStatus(used=store.current_usage(client), remaining=0, limit=store.limit, can_use=False),
                "You have reached your daily limit. Please upgrade to continue.",
            )
    except Exception:
        logger.exception("usage_gate_failed_open client=%s path=%s", client, request.url.path)
        return None

    logger.info("usage_limit_exceeded client=%s path=%s used=%s", client, request.url.path, denial.usage["used"])
    raise denial
