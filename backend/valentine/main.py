"""
Valentine Backend: FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
Why:   One place wires middleware, handlers, routes and static mounts, so
       tests build the same app the server runs.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn valentine.main:app) or `python -m valentine`.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │   POST /api/create-surprise   GET /api/get-surprise/{id} │
    │   GET  /api/check-surprise/{id}   GET /health   GET /    │
    │  Static: /uploads/*, /*                                  │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation→400 │ NotFound→404 │ Image/DB/other→500     │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup (any failure aborts before traffic is served):
    1. Configure logging
    2. Validate configuration (DATABASE_URL required)
    3. Connect to the database (pinned DNS, SELECT 1, ensure table)
    4. Create the uploads directory

    Shutdown:
    1. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from valentine import __version__
from valentine.config import settings
from valentine.database import Database
from valentine.exceptions import (
    ConfigurationError,
    NotFoundError,
    StorageUnavailableError,
    ValentineError,
    ValidationError,
)
from valentine.middleware.logging import RequestLoggingMiddleware
from valentine.middleware.request_id import RequestIDMiddleware, request_id_var
from valentine.routes import health, pages, surprises

logger = logging.getLogger(__name__)

INTERNAL_ERROR_PREFIX = "Internal Server Error"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-02-14T12:00:00 [INFO] valentine.services.surprise_service: ...
    Output goes to stdout for the container runtime to collect.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request library chatter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Acquire the database handle before serving and release it afterwards.

    Raising here makes uvicorn abort startup, so a missing DATABASE_URL or
    an unreachable database stops the process before it accepts requests.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Valentine Backend %s starting up...", __version__)

    try:
        settings.validate_required()
    except ConfigurationError as e:
        logger.error("%s", e.message)
        logger.error("Could not start: fix the configuration and restart the server.")
        raise

    database = Database(
        settings.database_url,
        dns_servers=settings.dns_servers_list,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        connect_timeout=settings.db_connect_timeout,
        echo=settings.log_level == "DEBUG",
    )
    try:
        await database.connect()
    except StorageUnavailableError as e:
        logger.error("Database connection error: %s | Context: %s", e.message, e.context)
        logger.error("Could not connect to the database. Server will not start.")
        raise

    uploads = Path(settings.uploads_root)
    uploads.mkdir(parents=True, exist_ok=True)
    logger.info("Uploads directory: %s", uploads.resolve())

    app.state.database = database
    logger.info("Server ready at http://%s:%d", settings.host, settings.port)

    try:
        yield
    finally:
        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("Valentine Backend shutting down...")
        app.state.database = None
        await database.disconnect()
        logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(message: str) -> dict:
    return {"error": message}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and {"error": ...} bodies.

    Handler hierarchy (most specific class wins):
        RequestValidationError  → 400 (missing form fields)
        ValidationError         → 400 (photo count, size)
        NotFoundError           → 404
        ValentineError (base)   → 500 "Internal Server Error: <message>"
        Exception (fallback)    → 500, details logged only
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        message = "Invalid request."
        if fields:
            message = f"Invalid request: missing or invalid {', '.join(fields)}."
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), fields)
        return JSONResponse(status_code=400, content=error_body(message))

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning(
            "[%s] Validation error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(status_code=400, content=error_body(exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=error_body(exc.message))

    @app.exception_handler(ValentineError)
    async def handle_server_error(request: Request, exc: ValentineError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=error_body(f"{INTERNAL_ERROR_PREFIX}: {exc.message}"),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=error_body(f"{INTERNAL_ERROR_PREFIX}: An unexpected error occurred."),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    No I/O happens here; the database is connected by the lifespan, so
    tests can build an app and attach their own Database to app.state.
    """
    app = FastAPI(
        title="Valentine Surprise API",
        description="Upload five photos and share a surprise page by link.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.database = None

    # Middleware executes in reverse order of addition:
    # RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    # Surprise payloads carry base64 photos
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(surprises.router)
    app.include_router(health.router)
    app.include_router(pages.router)

    # Mounted last: "/" catches every path no route claimed
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.uploads_root, check_dir=False),
        name="uploads",
    )
    app.mount(
        "/",
        StaticFiles(directory=settings.static_root, check_dir=False),
        name="static",
    )

    return app


app = create_app()
