import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from contenthub import __version__
from contenthub.adapters.sqlite.migrator import SQLiteMigrator
from contenthub.api.deps import get_settings
from contenthub.core.ports.storage import PresignError
from contenthub.domain.errors import RESOLUTION_ERRORS, ContentHubError, StoreError
from contenthub.rules.loader import load_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and migrate on startup (fail-fast)
    try:
        load_rules(settings.rules_path)
        logger.info("Rules loaded from %s", settings.rules_path)
        SQLiteMigrator(settings.db_path).run_migrations()
    except Exception:
        logger.critical("Startup failed", exc_info=True)
        sys.exit(1)

    yield


app = FastAPI(
    title="Content Hub API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# --- Error envelope ---

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


@app.exception_handler(ContentHubError)
async def content_hub_error_handler(request: Request, exc: ContentHubError) -> JSONResponse:
    if isinstance(exc, RESOLUTION_ERRORS):
        # Callers only learn that the link is unusable, the message says why
        return error_response(404, "NOT_FOUND", exc.message)
    if isinstance(exc, StoreError):
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc.message)
        return error_response(500, "INTERNAL_ERROR", "Internal server error")
    return error_response(exc.http_status, exc.code, exc.message)


@app.exception_handler(PresignError)
async def presign_error_handler(request: Request, exc: PresignError) -> JSONResponse:
    logger.error("Could not sign download for %s: %s", request.url.path, exc)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(exc.status_code, code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(400, "VALIDATION_ERROR", message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


# --- Routers ---
from contenthub.api.routes import (  # noqa: E402
    admin_assets,
    admin_share_links,
    downloads,
    public_share,
)

app.include_router(public_share.router, prefix="/s", tags=["Public Sharing"])
app.include_router(downloads.router, prefix="/downloads", tags=["Downloads"])
app.include_router(admin_assets.router, prefix="/api/admin", tags=["Admin Assets"])
app.include_router(
    admin_share_links.router, prefix="/api/admin/share-links", tags=["Admin Share Links"]
)


# CORS
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "content-hub"}
