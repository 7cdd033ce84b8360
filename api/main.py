#!/usr/bin/env python3
"""
Hold-to-Earn Energy Analytics API

REST API serving per-user and system-wide energy analytics for
hold-to-earn contracts, computed from the on-chain harvest log and
served through a TTL result cache.

Run:
    uvicorn api.main:app --host 0.0.0.0 --port 8000
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from starlette.responses import Response

from api.logging_config import CorrelationIDMiddleware, configure_structured_logging
from api.routes.energy_routes import router as energy_router
from hold_to_earn import __version__
from hold_to_earn.analytics_service import EnergyAnalyticsService
from hold_to_earn.config.settings import get_settings
from hold_to_earn.data.hiro_client import HiroClient
from hold_to_earn.data.log_fetcher import HoldToEarnLogSource
from hold_to_earn.utils.result_cache import create_result_store

# =============================================================================
# Configuration
# =============================================================================

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(message)s",
)
configure_structured_logging(json_logs=settings.is_production)

# Track startup time for /health endpoint
STARTUP_TIME = time.time()


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the indexer client and result store for the app's lifetime."""
    logging.info("=" * 60)
    logging.info("Energy Analytics API starting...")
    logging.info(f"Indexer: {settings.hiro_api_url}")
    logging.info(f"Result store: {'redis' if settings.redis_url else 'memory'}")
    logging.info(f"Listening on: {settings.api_host}:{settings.api_port}")
    logging.info("=" * 60)

    store = create_result_store(settings.redis_url)
    async with HiroClient(settings) as client:
        app.state.energy_service = EnergyAnalyticsService(
            HoldToEarnLogSource(client), store, settings
        )
        try:
            yield
        finally:
            close = getattr(store, "close", None)
            if close is not None:
                await close()
            logging.info("Energy Analytics API shutting down...")


# =============================================================================
# App Initialization
# =============================================================================

app = FastAPI(
    title="Hold-to-Earn Energy Analytics API",
    description="Energy harvest statistics and accrual rates for hold-to-earn contracts",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# =============================================================================
# CORS Middleware
# =============================================================================


class NoContentCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose preflight answer is 204 with no body."""

    def preflight_response(self, request_headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            k: v
            for k, v in response.headers.items()
            if k.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


app.add_middleware(
    NoContentCORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
)

app.add_middleware(CorrelationIDMiddleware)

app.include_router(energy_router)


# =============================================================================
# GET /health
# =============================================================================


class HealthStatus(BaseModel):
    """API health check response"""

    status: str = Field(description="healthy or degraded")
    version: str
    uptime_seconds: float
    result_store: Dict[str, Any] = Field(default_factory=dict)


@app.get("/health", response_model=HealthStatus)
async def health_check():
    """Liveness plus result store statistics."""
    service = getattr(app.state, "energy_service", None)
    store_stats: Dict[str, Any] = {}
    if service is not None and hasattr(service.store, "get_stats"):
        store_stats = service.store.get_stats()

    return HealthStatus(
        status="healthy" if service is not None else "degraded",
        version=__version__,
        uptime_seconds=round(time.time() - STARTUP_TIME, 2),
        result_store=store_stats,
    )


# =============================================================================
# Run with uvicorn (for development)
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )
