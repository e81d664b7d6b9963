"""Prometheus scrape endpoint, mounted on both services.

Plain text in the Prometheus exposition format, not the JSON envelope:

  # TYPE credential_verifications_total counter
  credential_verifications_total{status="valid"} 12.0

Not rate limited and not counted by MetricsMiddleware.  Restrict it at the
ingress in production; request rates and outcomes are internal data.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
