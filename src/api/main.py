"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import health, saved_items
from core.config import get_settings
from db.session import engine
from services.exceptions import (
    InvalidInputError,
    ItemNotFoundError,
    OwnerMismatchError,
    PersistenceError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    yield

    await engine.dispose()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Content Saver API",
    description="Save links, images and notes with AI-generated titles, summaries, categories and tags.",  # noqa: E501
    version="0.1.0",
    lifespan=lifespan,
)


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    """All errors share the {"error": message} body."""
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Missing or malformed request fields are a 400, listing the offending fields."""
    fields = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error["loc"] if part not in ("body", "query"))
        if name and name not in fields:
            fields.append(name)
    message = "Missing or invalid fields"
    if fields:
        message = f"{message}: {', '.join(fields)}"
    return error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    _request: Request, exc: StarletteHTTPException,
) -> JSONResponse:
    """Render HTTPExceptions (auth failures, unknown routes) in the shared error shape."""
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(_request: Request, exc: InvalidInputError) -> JSONResponse:
    """Malformed input is a client error."""
    return error_response(400, str(exc))


@app.exception_handler(ItemNotFoundError)
async def item_not_found_handler(_request: Request, exc: ItemNotFoundError) -> JSONResponse:
    """Missing and foreign items both answer 404 so existence never leaks."""
    return error_response(404, str(exc))


@app.exception_handler(OwnerMismatchError)
async def owner_mismatch_handler(_request: Request, exc: OwnerMismatchError) -> JSONResponse:
    """A token presented on behalf of another user."""
    return error_response(403, str(exc))


@app.exception_handler(UpstreamError)
async def upstream_error_handler(_request: Request, exc: UpstreamError) -> JSONResponse:
    """Scrape or AI failures: log the detail, return a generic message."""
    logger.warning("Content processing failed: %s", exc)
    return error_response(500, "Failed to process content")


@app.exception_handler(PersistenceError)
async def persistence_error_handler(_request: Request, exc: PersistenceError) -> JSONResponse:
    """Database failures; the message names the operation only."""
    return error_response(500, str(exc))


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(saved_items.router)
