from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    sentry_dsn: str | None
    client_url: str
    cors_allowed_origins: tuple[str, ...]
    cors_allow_credentials: bool
    trust_x_forwarded_for: bool
    rate_limit: str
    rate_limit_enabled: bool
    openai_api_key: str | None
    openai_model: str
    openai_base_url: str | None
    openai_timeout_s: float
    openai_max_retries: int
    daily_usage_limit: int
    usage_timezone: str
    usage_store_backend: str
    usage_db_path: str
    usage_cleanup_interval_s: int
    max_upload_bytes: int
    upload_timeout_s: float
    pdf_render_timeout_s: float
    upgrade_price: str

    @property
    def expose_error_details(self) -> bool:
        return self.app_env == "development"


settings = Settings(
    app_env=(_get_env("APP_ENV", "production") or "production").strip().lower(),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    client_url=_get_env("CLIENT_URL", "http://localhost:5173") or "http://localhost:5173",
    cors_allowed_origins=_get_env_list("CORS_ALLOWED_ORIGINS", []),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", True),
    trust_x_forwarded_for=_get_env_bool("TRUST_X_FORWARDED_FOR", False),
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    openai_api_key=_get_env("OPENAI_API_KEY"),
    openai_model=_get_env("OPENAI_MODEL", "gpt-4") or "gpt-4",
    openai_base_url=_get_env("OPENAI_BASE_URL"),
    openai_timeout_s=_get_env_float("OPENAI_TIMEOUT_S", 60.0),
    openai_max_retries=_get_env_int("OPENAI_MAX_RETRIES", 0),
    daily_usage_limit=max(1, _get_env_int("DAILY_USAGE_LIMIT", 3)),
    usage_timezone=_get_env("USAGE_TIMEZONE", "UTC") or "UTC",
    usage_store_backend=(_get_env("USAGE_STORE_BACKEND", "memory") or "memory").strip().lower(),
    usage_db_path=_get_env("USAGE_DB_PATH", "data/usage.db") or "data/usage.db",
    usage_cleanup_interval_s=max(60, _get_env_int("USAGE_CLEANUP_INTERVAL_S", 3600)),
    max_upload_bytes=_get_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
    upload_timeout_s=_get_env_float("UPLOAD_TIMEOUT_S", 60.0),
    pdf_render_timeout_s=_get_env_float("PDF_RENDER_TIMEOUT_S", 60.0),
    upgrade_price=_get_env("UPGRADE_PRICE", "₹399/month") or "₹399/month",
)

if settings.usage_store_backend not in {"memory", "sqlite"}:
    raise RuntimeError("USAGE_STORE_BACKEND must be either 'memory' or 'sqlite'.")

try:
    ZoneInfo(settings.usage_timezone)
except (ZoneInfoNotFoundError, ValueError) as exc:
    raise RuntimeError(f"USAGE_TIMEZONE '{settings.usage_timezone}' is not a known time zone.") from exc
