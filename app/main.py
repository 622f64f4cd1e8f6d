import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from app.api.v1.ai import router as ai_router
from app.api.v1.export import router as export_router
from app.api.v1.health import router as health_router
from app.api.v1.upload import router as upload_router
from app.api.v1.usage import router as usage_router
from app.core.cors import cors_allowed_origins
from app.core.errors import (
    FixoraError,
    fixora_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_error_handler,
)
from app.core.rate_limit import limiter
from app.core.config import settings
from app.core.lifespan import lifespan

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.app_env)

app = FastAPI(title="Fixora.ai API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "X-Usage-Remaining",
        "X-Usage-Limit-Reached",
        "X-AI-Fallback",
        "X-AI-Fallback-Reason",
        "Content-Disposition",
    ],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(FixoraError, fixora_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/api", tags=["Health"])
app.include_router(usage_router, prefix="/api", tags=["Usage"])
app.include_router(ai_router, prefix="/api", tags=["AI"])
app.include_router(upload_router, prefix="/api", tags=["Upload"])
app.include_router(export_router, prefix="/api", tags=["Export"])
