#!/usr/bin/env python3
"""
Structured Logging Configuration with Correlation ID

Implements:
- structlog JSON output in production, console output in development
- Correlation ID middleware for request tracing
- Context enrichment for all log messages
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


# =============================================================================
# Structlog Configuration
# =============================================================================


def configure_structured_logging(json_logs: bool = True):
    """
    Configure structlog on top of stdlib logging.

    Processors:
    - Merge request-scoped context (correlation_id)
    - Filter by level
    - Add logger name and log level
    - ISO timestamp
    - Stack traces and exception info
    - JSON (production) or console (development) rendering

    Args:
        json_logs: Render JSON lines instead of human-readable console output
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Injects correlation_id into all logs and responses.

    Flow:
    1. Extract correlation_id from X-Correlation-ID header (or generate new)
    2. Bind to structlog context (available in all subsequent logs)
    3. Add to response headers
    4. Clear context after request completes

    Usage:
        app.add_middleware(CorrelationIDMiddleware)
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            structlog.contextvars.clear_contextvars()


# =============================================================================
# Helper Functions
# =============================================================================


def get_logger(name: str):
    """
    Get structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger

    Example:
        logger = get_logger(__name__)
        logger.info("energy_request", contract_id=contract_id, refresh=True)
    """
    return structlog.get_logger(name)
