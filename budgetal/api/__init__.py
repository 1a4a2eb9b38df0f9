"""
HTTP API Package

Builds the FastAPI application that sits in front of the flows.

Error mapping (the response body is always {"error": message}):
- malformed or out-of-range period  -> 404 (the two are not told apart)
- missing or foreign budget / item  -> 404
- missing or unknown session        -> 401
- storage unreachable               -> 503
- any other storage failure         -> 500
- anything unexpected               -> 500 (audited as a system error)
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from budgetal import __version__
from budgetal.api.auth import SessionResolver, StaticSessionResolver, current_user
from budgetal.api.routes import router
from budgetal.audit import configure_logging, create_correlation_id
from budgetal.config import get_settings
from budgetal.services.storage import (
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from budgetal.validation import ParameterRejectedError


logger = structlog.get_logger("budgetal.api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _parameter_rejected(request: Request, exc: ParameterRejectedError) -> JSONResponse:
    # Already audited by the flow with its kind
    return _error(404, "Not Found")


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, "Not Found")


async def _storage_unavailable(request: Request, exc: StorageConnectionError) -> JSONResponse:
    logger.error("storage_unavailable", path=request.url.path, error=str(exc))
    return _error(503, "We are performing maintenance. We should be done shortly.")


async def _storage_failed(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("storage_failed", path=request.url.path, error=str(exc))
    return _error(500, "Something went wrong")


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    await request.app.state.audit_logger.log_error(
        error_type=type(exc).__name__,
        error_message=str(exc),
        details={"path": request.url.path},
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    return _error(500, "Something went wrong")


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app(
    components: Optional[tuple] = None,
    session_resolver: Optional[SessionResolver] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        components: (provisioning_flow, item_flow, statistics_query, audit_logger),
                    as returned by create_app_components(). Built from
                    settings when omitted.
        session_resolver: Maps session tokens to users. Defaults to the
                    static token map from settings.
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    if components is None:
        from budgetal.orchestrator import create_app_components
        components = create_app_components(use_storage=True)
    provisioning_flow, item_flow, statistics_query, audit_logger = components

    app = FastAPI(
        title="Budgetal",
        version=__version__,
        debug=settings.app.debug_mode,
    )
    app.state.provisioning_flow = provisioning_flow
    app.state.item_flow = item_flow
    app.state.statistics_query = statistics_query
    app.state.audit_logger = audit_logger
    app.state.session_header = settings.auth.session_header
    app.state.session_resolver = session_resolver or StaticSessionResolver()

    @app.middleware("http")
    async def bind_correlation_id(request: Request, call_next):
        correlation_id = create_correlation_id()
        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(correlation_id=str(correlation_id))
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")
        response.headers["X-Correlation-ID"] = str(correlation_id)
        return response

    app.add_exception_handler(ParameterRejectedError, _parameter_rejected)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(StorageConnectionError, _storage_unavailable)
    app.add_exception_handler(StorageError, _storage_failed)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected)

    app.include_router(router)
    return app


__all__ = [
    "SessionResolver",
    "StaticSessionResolver",
    "create_app",
    "current_user",
]
