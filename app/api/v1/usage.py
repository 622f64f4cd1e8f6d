import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core.usage_gate import client_key, get_usage_store, upgrade_offer
from app.core.usage_store import UsageStore
from app.schemas.usage import UsageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/usage",
    response_model=UsageResponse,
    summary="Daily usage",
    description="Free AI uses consumed and left today for the caller.",
)
async def usage_status(request: Request, store: UsageStore = Depends(get_usage_store)):
    client = client_key(request)
    try:
        usage = store.status(client)
    except Exception as exc:  # noqa: BLE001 - reported as a JSON 500
        logger.exception("usage_status_failed client=%s", client)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to get usage status", "message": type(exc).__name__},
        )

    return UsageResponse(
        usage=usage.to_dict(),
        upgrade=upgrade_offer() if usage.remaining == 0 else None,
    )
