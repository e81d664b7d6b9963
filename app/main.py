"""ASGI entry points for both services.

    uvicorn app.main:issuance_app --port 3001
    uvicorn app.main:verification_app --port 3002

One codebase, two apps: they share config, logging, metrics and the
credential model, and differ only in their routers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.credentials import router as credentials_router
from app.api.errors import register_exception_handlers
from app.api.health import issuance_router, verification_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.verifications import router as verifications_router
from app.core.config import APP_VERSION, SETTINGS
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.db.redis import lifespan_redis
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware

ServiceName = Literal["issuance-service", "verification-service"]

# Configure logging before anything else runs.
setup_logging(
    SETTINGS.log_level,
    json_format=SETTINGS.log_json,
    worker_id=SETTINGS.worker_id,
)

logger = logging.getLogger(__name__)

_ROUTERS: dict[str, tuple[APIRouter, ...]] = {
    "issuance-service": (issuance_router, credentials_router),
    "verification-service": (verification_router, verifications_router),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one fails.
    async with lifespan_db():
        async with lifespan_redis():
            logger.info(
                "%s started  env=%s worker_id=%s port=%d",
                app.title,
                SETTINGS.app_env,
                SETTINGS.worker_id,
                SETTINGS.port,
            )
            if SETTINGS.uses_default_secret:
                logger.warning(
                    "CREDENTIAL_SECRET is not set; signing with the built-in "
                    "default secret. Credentials are forgeable."
                )
            yield


def create_app(service: ServiceName) -> FastAPI:
    app = FastAPI(
        title=service,
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(SETTINGS.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Last added runs first: RequestContext (outermost) → Metrics → CORS →
    # route, so metrics and CORS log lines already carry the request ID.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware, service=service)

    register_exception_handlers(app)

    app.include_router(metrics_router)
    for router in _ROUTERS[service]:
        app.include_router(router)

    return app


issuance_app = create_app("issuance-service")
verification_app = create_app("verification-service")
