"""Liveness and readiness probes.

  /health: the process is up; reports each backing service.  Always 200,
           ``status`` says "degraded" when a configured dependency fails.
  /ready:  200 when the instance can serve attempts.  PostgreSQL is the
           system of record, so a configured but unreachable database is
           503.  Redis is optional (in-memory fallbacks) and never fails it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from prometheus_client import REGISTRY
from sqlalchemy import text

from prep_service.db.engine import engine
from prep_service.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {
        "status": overall,
        "checks": checks,
        "active_attempts": int(REGISTRY.get_sample_value("active_attempt_sessions") or 0),
    }


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
