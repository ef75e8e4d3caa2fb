"""Scheduler: keeps the shared action cache warm in the background."""

import asyncio

from nicegui import run

from watchmqtt.actions import REFRESH_INTERVAL, ActionCache
from watchmqtt.logging_config import get_logger

logger = get_logger(__name__)

_task: asyncio.Task | None = None


async def _refresh_loop(cache: ActionCache, interval: float):
    """Refresh immediately, then every ``interval`` seconds (cache permitting)."""
    while True:
        try:
            await run.io_bound(cache.refresh)
        except Exception as e:
            logger.error("Action cache refresh error: %s", e)
        await asyncio.sleep(interval)


def start_scheduler(cache: ActionCache, interval: float = REFRESH_INTERVAL):
    global _task
    if _task is not None:
        logger.warning("Scheduler already running")
        return
    _task = asyncio.ensure_future(_refresh_loop(cache, interval))
    logger.info("Action discovery scheduler started (interval=%ds)", interval)


def stop_scheduler():
    global _task
    if _task is not None:
        _task.cancel()
        _task = None
        logger.info("Action discovery scheduler stopped")
