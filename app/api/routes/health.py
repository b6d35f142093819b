from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.core.config import get_settings
from app.db.models import Club, Notification, PointsHistoryEntry, Product, Purchase, User
from app.db.session import SessionLocal
from app.workers.celery_app import celery_app
from app.workers.tasks.billing_reminders import BILLING_REMINDER_SCHEDULE_KEY

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)

_LIST_TABLES_SQL = text("SELECT tablename FROM pg_catalog.pg_tables WHERE schemaname = current_schema()")
_LEDGER_TABLES = frozenset(
    model.__tablename__ for model in (Club, User, Product, Purchase, PointsHistoryEntry, Notification)
)


def _check_result(*, error: str | None = None, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": "ok"} if error is None else {"status": "failed", "error": error}
    payload.update(extra)
    return payload


async def _check_database() -> dict[str, Any]:
    """Connects and verifies every club ledger table has been migrated."""
    try:
        async with SessionLocal() as session:
            present = set((await session.execute(_LIST_TABLES_SQL)).scalars().all())
    except Exception:
        logger.warning("health_database_check_failed", exc_info=True)
        return _check_result(error="database_unavailable")

    missing = sorted(_LEDGER_TABLES - present)
    if missing:
        logger.warning("health_database_schema_missing", missing_tables=missing)
        return _check_result(error="schema_missing", missing_tables=missing)
    return _check_result()


async def _check_redis() -> dict[str, Any]:
    redis_client: Redis | None = None
    try:
        redis_client = Redis.from_url(get_settings().redis_url)
        if await redis_client.ping() is not True:
            return _check_result(error="redis_unexpected_ping")
        return _check_result()
    except Exception:
        logger.warning("health_redis_check_failed", exc_info=True)
        return _check_result(error="redis_unavailable")
    finally:
        if redis_client is not None:
            await redis_client.aclose()


def _check_reminder_worker_sync() -> dict[str, Any]:
    """Pings the workers and reports whether billing reminders are scheduled."""
    entry = (celery_app.conf.beat_schedule or {}).get(BILLING_REMINDER_SCHEDULE_KEY)
    if entry is None:
        return _check_result(error="billing_reminders_unscheduled")
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = inspector.ping() if inspector is not None else None
    except Exception:
        logger.warning("health_celery_check_failed", exc_info=True)
        return _check_result(error="celery_unavailable")
    if not replies:
        return _check_result(error="celery_no_workers")
    return _check_result(workers=len(replies), reminder_queue=entry["options"]["queue"])


async def _check_reminder_worker() -> dict[str, Any]:
    return await asyncio.to_thread(_check_reminder_worker_sync)


def _respond(checks: dict[str, dict[str, Any]], *, ok_status: str, failed_status: str) -> JSONResponse:
    passed = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if passed else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_status if passed else failed_status, "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health() -> JSONResponse:
    database, redis, reminders = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_reminder_worker(),
    )
    return _respond(
        {"database": database, "redis": redis, "billing_reminders": reminders},
        ok_status="ok",
        failed_status="degraded",
    )


@router.get("/ready")
async def ready() -> JSONResponse:
    # Requests are served without a reminder worker.
    database, redis = await asyncio.gather(_check_database(), _check_redis())
    return _respond({"database": database, "redis": redis}, ok_status="ready", failed_status="not_ready")
