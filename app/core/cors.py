from __future__ import annotations

from app.core.config import Settings, settings

LOCAL_DEV_ORIGINS = ("http://localhost:8080", "http://localhost:8081")


def cors_allowed_origins(config: Settings = settings) -> list[str]:
    """Explicit CORS_ALLOWED_ORIGINS wins; otherwise the client URL plus local dev servers."""
    if config.cors_allowed_origins:
        return list(config.cors_allowed_origins)
    origins = [config.client_url.rstrip("/"), *LOCAL_DEV_ORIGINS]
    return list(dict.fromkeys(origins))
