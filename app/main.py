from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.auth import router as auth_router
from app.api.metrics import router as metrics_router
from app.api.snippets import router as snippets_router
from app.api.users import router as users_router
from app.config import get_settings
from app.db.session import dispose_engine, init_db
from app.exceptions import SnipperError, ValidationError
from app.models.schemas import ErrorResponse
from app.observability.logging import configure_logging
from app.observability.middleware import RequestContextMiddleware

logger = logging.getLogger(__name__)

_HTTP_ERROR_NAMES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
}


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    if settings.auto_create_tables:
        init_db()
    logger.info("app.startup")
    yield
    dispose_engine()
    logger.info("app.shutdown")


def _error_body(
    request: Request, status: int, error: str, message: str, errors: dict[str, str] | None = None
) -> JSONResponse:
    body = ErrorResponse(
        timestamp=datetime.now(timezone.utc),
        status=status,
        error=error,
        message=message,
        path=request.url.path,
        errors=errors,
    )
    return JSONResponse(status_code=status, content=body.model_dump(mode="json", by_alias=True, exclude_none=True))


async def snipper_error_handler(request: Request, exc: SnipperError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", extra={"error": exc.message, **exc.context})
    else:
        logger.info("request.rejected", extra={"status": exc.status_code, "error": exc.message, **exc.context})
    errors = exc.errors if isinstance(exc, ValidationError) else None
    return _error_body(request, exc.status_code, exc.error, exc.message, errors)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, str] = {}
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field = ".".join(loc) or "request"
        errors.setdefault(field, str(item.get("msg", "Invalid value")))
    return _error_body(request, 400, "Validation Failed", "Input validation failed", errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = _HTTP_ERROR_NAMES.get(exc.status_code, "Error")
    return _error_body(request, exc.status_code, error, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", extra={"error_type": type(exc).__name__})
    return _error_body(request, 500, "Internal Server Error", "An unexpected error occurred")


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(title="Snipper", version="0.1.0", lifespan=lifespan)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestContextMiddleware)

    application.add_exception_handler(SnipperError, snipper_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)
    application.add_exception_handler(Exception, unhandled_exception_handler)

    application.include_router(auth_router)
    application.include_router(snippets_router)
    application.include_router(users_router)
    application.include_router(metrics_router)

    @application.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
