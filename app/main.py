"""FastAPI app factory: health/stats endpoints, token + room routes, error mapping."""
from __future__ import annotations

import time
from collections.abc import Callable
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import get_store
from app.api import router as api_router
from app.api.models import HealthResponse, StatsResponse
from app.config import Settings, load_settings
from app.domain.store import TokenStore
from app.domain.validation import ValidationFailed
from app.logging_conf import get_logger, setup_logging
from app.service import relay_service

setup_logging()
logger = get_logger("app")


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFailed)
    async def _validation_failed(request: Request, exc: ValidationFailed) -> JSONResponse:
        logger.info(
            "request.rejected",
            extra={"event": "request_rejected", "path": request.url.path, "reason": str(exc)},
        )
        return _error(status.HTTP_400_BAD_REQUEST, exc.code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        return _error(status.HTTP_400_BAD_REQUEST, "validation_error", str(first.get("msg", "invalid request")))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Wrong method on a known path is reported like any unmatched route.
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return _error(status.HTTP_404_NOT_FOUND, "not_found", "Endpoint not found")
        return _error(exc.status_code, "http_error", str(exc.detail))


def create_app(store: TokenStore | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the relay app around `store` (a fresh in-memory store by default)."""
    settings = settings or load_settings()
    app = FastAPI(title=settings.name, version=settings.version, redirect_slashes=False)
    app.state.token_store = store if store is not None else TokenStore()
    app.state.started_at = time.monotonic()
    app.state.settings = settings

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info("startup", extra={"event": "startup", "version": settings.version})

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        # The store lives and dies with the process; report what is being dropped.
        logger.info(
            "shutdown",
            extra={"event": "shutdown", "dropped_tokens": len(app.state.token_store)},
        )

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """Log request start/end with a correlation id echoed as X-Request-ID."""
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id

        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "method": request.method,
                    "path": request.url.path,
                    "request_id": request_id,
                },
            )
            response = _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "server_error", "Internal server error"
            )
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    # Added last so it wraps request_logger, including its 500 responses.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.get("/", response_model=HealthResponse, summary="Health check")
    async def health() -> HealthResponse:
        return HealthResponse(name=settings.name, version=settings.version)

    @app.get("/stats", response_model=StatsResponse, summary="Store statistics")
    async def stats(store: TokenStore = Depends(get_store)) -> StatsResponse:
        counters, uptime = relay_service.get_stats(store, started_at=app.state.started_at)
        return StatsResponse(
            total_tokens=counters.total_tokens,
            room_count=counters.room_count,
            uptime=round(uptime, 3),
        )

    app.include_router(api_router)
    _install_error_handlers(app)

    return app


# ASGI entrypoint for uvicorn: `uvicorn app.main:app --port 3000`
app = create_app()
