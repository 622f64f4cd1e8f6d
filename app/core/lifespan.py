import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from app.core.config import settings
from app.core.usage_store import create_usage_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    store = create_usage_store(settings)
    app.state.usage_store = store
    stop_event = asyncio.Event()

    async def periodic_cleanup() -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=settings.usage_cleanup_interval_s)
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set():
                break
            try:
                deleted = store.cleanup_stale_records()
                if deleted:
                    logger.info("usage_cleanup deleted=%s", deleted)
            except Exception as exc:  # pragma: no cover
                logger.warning("usage_cleanup_failed: %s", exc)

    cleanup_task = asyncio.create_task(periodic_cleanup())
    try:
        yield
    finally:
        stop_event.set()
        if not cleanup_task.done():
            cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cleanup_task
        app.state.usage_store = None
        store.close()
