"""
FastAPI backend for the dmp webapp.

This module provides the web API behind the ingestion-space flow editor:
database and ETL action catalogs, connections, space graphs (nodes, edges,
mappings, actions), canvas gestures and workspace drafts.
"""

import os

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse

from api.app_config import get_settings
from api.shared.logger import get_logger, setup_logging

setup_logging(get_settings().log_level)
logger = get_logger(__name__)

from api.catalog import router as catalog_router
from api.spaces import router as spaces_router
from api.system import log_error
from api.system import router as system_router
from api.workspace import router as workspace_router

# Create FastAPI app
app = FastAPI(
    title="dmp API",
    description="API for the dmp ingestion-space flow editor",
    version="1.0.0",
    default_response_class=ORJSONResponse,
)


# ============= Exception Handlers for Error Logging =============


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Log HTTP exceptions and return JSON response."""
    # Only log 5xx errors (server errors)
    if exc.status_code >= 500:
        log_error(
            endpoint=str(request.url.path),
            message=str(exc.detail),
            level="error",
            details=f"Status code: {exc.status_code}",
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions and return JSON response."""
    log_error(
        endpoint=str(request.url.path),
        message=str(exc),
        level="critical",
        details=f"Unhandled exception: {type(exc).__name__}",
        exc=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# The editor front end runs on its own dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include API routes
app.include_router(system_router, prefix="/api", tags=["system"])
app.include_router(catalog_router, prefix="/api", tags=["catalog"])
app.include_router(workspace_router, prefix="/api", tags=["workspace"])
app.include_router(spaces_router, prefix="/api", tags=["spaces"])


# ============= Startup Events =============


@app.on_event("startup")
async def startup_event():
    """Log the effective settings on application startup."""
    settings = get_settings()
    logger.info("dmp webapp starting...")
    logger.info("Config folder: %s", settings.config_dir)
    if settings.persist_graphs:
        logger.info("Space graphs persisted under %s", settings.spaces_dir)
    else:
        logger.info("Space graphs kept in memory only")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="dmp backend server")
    parser.add_argument(
        "--port",
        type=int,
        default=get_settings().port,
        help="Port to run the server on (default: 8000 or DMP_PORT env var)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=os.environ.get("DMP_HOST", "127.0.0.1"),
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--reload",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable auto-reload",
    )
    args = parser.parse_args()

    uvicorn.run(
        "main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=get_settings().log_level.lower(),
    )
