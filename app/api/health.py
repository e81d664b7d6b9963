"""Health, readiness and service-info endpoints for both services.

  /health (liveness plus dependency report):
    200 while the database answers, 503 when it does not.  Redis only
    backs rate limiting and has an in-memory fallback, so a Redis outage
    reports ``degraded`` but stays 200.  The verification service also
    reports whether the issuance service is reachable; that never fails
    the check either, since restarting this replica would not fix it.

  /ready (readiness):
    200 or 503 on the database alone.  A not-ready replica is taken out of
    the load balancer, not restarted.

  / (service info): name, version, replica.
"""

from __future__ import annotations

import time
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_issuance_client
from app.api.envelope import envelope
from app.core.clock import to_iso, utc_now
from app.core.config import APP_VERSION, SETTINGS
from app.db import engine as db_engine
from app.db import redis as db_redis
from app.services.issuance_client import IssuanceClient

_STARTED = time.monotonic()

issuance_router = APIRouter(tags=["health"])
verification_router = APIRouter(tags=["health"])


async def _dependency_report() -> tuple[dict[str, Any], bool]:
    database = await db_engine.ping_database()
    redis = await db_redis.ping_redis()
    db_ok = database != "down"
    db_label = {"ok": "connected", "down": "disconnected"}.get(database, "in-memory")

    if not db_ok:
        overall = "unhealthy"
    elif redis == "degraded":
        overall = "degraded"
    else:
        overall = "healthy"

    report: dict[str, Any] = {
        "status": overall,
        "uptime": int(time.monotonic() - _STARTED),
        "database": db_label,
        "checks": {"database": database, "redis": redis},
        "worker_id": SETTINGS.worker_id,
        "timestamp": to_iso(utc_now()),
    }
    return report, db_ok


def _health_response(report: dict[str, Any], db_ok: bool) -> JSONResponse:
    if db_ok:
        body = envelope("Service is healthy", report)
        return JSONResponse(status_code=status.HTTP_200_OK, content=body)
    body = envelope("Service is unhealthy", report, success=False)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)


async def _ready() -> Response:
    database = await db_engine.ping_database()
    if database == "down":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)


def _info(service: str) -> dict[str, Any]:
    body = envelope(f"{service} is running")
    body["service"] = service
    body["version"] = APP_VERSION
    return body


# --- issuance service -----------------------------------------------------


@issuance_router.get("/health")
async def issuance_health() -> JSONResponse:
    report, db_ok = await _dependency_report()
    return _health_response(report, db_ok)


@issuance_router.get("/ready")
async def issuance_ready() -> Response:
    return await _ready()


@issuance_router.get("/")
async def issuance_info() -> dict:
    return _info("issuance-service")


# --- verification service -------------------------------------------------


@verification_router.get("/health")
async def verification_health(
    client: Annotated[IssuanceClient, Depends(get_issuance_client)],
) -> JSONResponse:
    report, db_ok = await _dependency_report()
    reachable = await client.health_check()
    report["issuance_service"] = "reachable" if reachable else "unreachable"
    return _health_response(report, db_ok)


@verification_router.get("/ready")
async def verification_ready() -> Response:
    return await _ready()


@verification_router.get("/")
async def verification_info() -> dict:
    return _info("verification-service")
