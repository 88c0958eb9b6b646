"""
FastAPI application factory for the book catalog validation service.

Usage:
    python -m api.app                              # Dev server on port 8000
    APP_DB_PATH=/data/catalog.sqlite python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Logging is text by default; APP_LOG_FORMAT=json switches to newline-delimited
JSON.  CORS origins come from APP_CORS_ORIGINS.
"""

import json
import logging
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import api.database as _db_mod
from api.database import get_db_path
from api.routes import reference, validation
from utils.config import AppConfig
from utils.reference import (
    ReferenceLookupError,
    ReferenceTypeError,
    UnknownReferenceSetError,
)

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


def configure_logging(cfg: AppConfig) -> None:
    """Install a single stream handler on the root logger."""
    handler = logging.StreamHandler()
    if cfg.log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(handlers=[handler], level=cfg.log_level, force=True)


_logger = logging.getLogger("book_catalog_api")
configure_logging(_cfg)


def _error_body(error: str, detail: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": detail, "status_code": status_code},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn on startup if the catalog database is missing."""
    db_path = get_db_path()
    if not db_path.exists():
        _logger.warning(
            "Database not found at %s; reference checks will answer 503", db_path
        )
    yield


def create_app(db_path: Path | None = None,
               reference_tables: dict[str, str] | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).
        reference_tables: Override the reference set -> table mapping.

    Returns:
        Configured FastAPI application instance.
    """
    if db_path is not None:
        _db_mod.set_db_path(db_path)

    app = FastAPI(
        title="Book Catalog Validation API",
        summary="Conditional payload validation for book catalog forms.",
        description=(
            "## Book Catalog Validation API\n\n"
            "Validates form payloads against the catalog's conditional rules.\n\n"
            "### Key concepts\n"
            "- **Base fields** `aaa`, `bbb`, `ccc` are always checked.\n"
            "- When `ccc = 11`, the `ddd` list is required and each item is "
            "checked against a strict schema.\n"
            "- `zzz` and `yyy` must reference existing entities in the "
            "**Zzz** and **Yyy** reference sets.\n"
            "- Errors are keyed by property path, e.g. `ddd[2].zzz`."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "validation",
                "description": "Validate payloads and describe the rule table.",
            },
            {
                "name": "reference",
                "description": "Reference id lists for client-side allow-lists.",
            },
            {
                "name": "meta",
                "description": "Health check.",
            },
        ],
    )
    app.state.reference_tables = dict(
        _cfg.reference_tables if reference_tables is None else reference_tables
    )

    # ── CORS middleware ────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ─────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with its duration and a short request id."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, request.url.path, response.status_code,
                duration_ms, request_id,
            )
        return response

    # ── Error handling ─────────────────────────────────────────────────────────

    @app.exception_handler(ReferenceLookupError)
    async def reference_lookup_error_handler(request: Request,
                                             exc: ReferenceLookupError):
        _logger.error("reference lookup failed path=%s: %s", request.url.path, exc)
        return _error_body("Reference lookup unavailable", str(exc), 503)

    @app.exception_handler(UnknownReferenceSetError)
    async def unknown_set_handler(request: Request, exc: UnknownReferenceSetError):
        return _error_body("Not found", f"Unknown reference set {exc}", 404)

    @app.exception_handler(ReferenceTypeError)
    async def reference_type_error_handler(request: Request,
                                           exc: ReferenceTypeError):
        return _error_body("Bad request", str(exc), 400)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _error_body("Bad request", str(exc), 400)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of a traceback."""
        _logger.exception("unhandled error path=%s", request.url.path)
        return _error_body("Internal server error", str(exc), 500)

    # ── Health check ───────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health():
        """Return 200 OK if the API is running and can read the reference tables."""
        db_path = get_db_path()
        if not db_path.exists():
            return JSONResponse(
                status_code=503,
                content={"status": "no_database", "database": str(db_path)},
            )
        try:
            conn = sqlite3.connect(str(db_path))
            try:
                counts = {
                    set_name: conn.execute(
                        f"SELECT COUNT(*) FROM {table}"
                    ).fetchone()[0]
                    for set_name, table in app.state.reference_tables.items()
                }
            finally:
                conn.close()
        except sqlite3.Error as e:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "error": str(e)},
            )
        return {"status": "ok", "database": str(db_path), "reference_counts": counts}

    # ── Register routers ───────────────────────────────────────────────────────

    prefix = "/api/v1"
    app.include_router(validation.router, prefix=prefix)
    app.include_router(reference.router,  prefix=prefix)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
