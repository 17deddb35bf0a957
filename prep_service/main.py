from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prep_service.api.analytics import router as analytics_router
from prep_service.api.attempts import router as attempts_router
from prep_service.api.health import router as health_router
from prep_service.api.metrics_endpoint import router as metrics_router
from prep_service.api.speech import router as speech_router
from prep_service.api.tests import router as tests_router
from prep_service.core.config import SETTINGS
from prep_service.core.logging import setup_logging
from prep_service.db.engine import lifespan_db
from prep_service.db.redis import lifespan_redis
from prep_service.middleware.metrics import MetricsMiddleware
from prep_service.middleware.request_context import RequestContextMiddleware
from prep_service.services.attempt_service import attempt_service

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown runs in reverse order: sessions, then Redis, then the DB.
    async with lifespan_db():
        async with lifespan_redis():
            try:
                yield
            finally:
                attempt_service.reset()


app = FastAPI(
    title="prep-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(tests_router)
app.include_router(attempts_router)
app.include_router(analytics_router)
app.include_router(speech_router)

logger.info(
    "prep-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
