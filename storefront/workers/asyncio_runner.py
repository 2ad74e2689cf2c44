from __future__ import annotations

import asyncio
import time
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog

from storefront.db import session as db_session

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _job_name(job: Coroutine[Any, Any, T]) -> str:
    return getattr(job, "__qualname__", type(job).__name__).removesuffix("_async")


async def _isolated(job: Coroutine[Any, Any, T]) -> T:
    # Each Celery run gets its own event loop; pooled asyncpg connections from a previous loop are unusable.
    await db_session.dispose_engine()
    try:
        return await job
    finally:
        await db_session.dispose_engine()


def run_async_job(job: Coroutine[Any, Any, T]) -> T:
    """Runs one scheduled ledger job to completion and logs how it went."""
    name = _job_name(job)
    started = time.monotonic()
    try:
        result = asyncio.run(_isolated(job))
    except Exception:
        logger.exception(
            "ledger_job_failed",
            job=name,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        raise
    logger.info(
        "ledger_job_finished",
        job=name,
        duration_ms=int((time.monotonic() - started) * 1000),
        summary=result if isinstance(result, dict) else None,
    )
    return result
