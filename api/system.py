"""
System API routes for the dmp webapp.

This module provides FastAPI routes for system health, environment
information, effective settings and the recent error log.
"""

import platform
import sys
import traceback
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, Optional

from fastapi import APIRouter

from .app_config import get_settings
from .flow.session import get_space_manager
from .shared.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

MAX_ERROR_ENTRIES = 200

_error_log: Deque[Dict[str, Any]] = deque(maxlen=MAX_ERROR_ENTRIES)


def log_error(
    endpoint: str,
    message: str,
    level: str = "error",
    details: Optional[str] = None,
    exc: Optional[BaseException] = None,
) -> None:
    """Record an error for /system/errors and write it to the log."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "endpoint": endpoint,
        "message": message,
        "level": level,
        "details": details,
    }
    if exc is not None:
        entry["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    _error_log.append(entry)

    if level == "critical":
        logger.critical("%s: %s (%s)", endpoint, message, details or "")
    else:
        logger.error("%s: %s (%s)", endpoint, message, details or "")


def _get_package_versions() -> Dict[str, str]:
    """Get versions of key packages."""
    from importlib.metadata import PackageNotFoundError, version

    packages = {}
    for name in ("fastapi", "uvicorn", "pydantic", "platformdirs", "orjson", "PyYAML"):
        try:
            packages[name] = version(name)
        except PackageNotFoundError:
            pass
    return packages


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "message": "dmp webapp is running",
    }


@router.get("/system/info")
async def system_info():
    """Get system and environment information."""
    return {
        "python": {
            "version": sys.version,
            "platform": sys.platform,
        },
        "system": {
            "os": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
        },
        "packages": _get_package_versions(),
    }


@router.get("/system/status")
async def system_status():
    """Get current editor status: spaces and registered connections."""
    manager = get_space_manager()
    return {
        "status": {
            "spaces": manager.list_spaces(),
            "connections_count": len(manager.connections),
            "persistence_enabled": manager.repository is not None,
        }
    }


@router.get("/system/settings")
async def system_settings():
    """Get the effective application settings."""
    return {"settings": get_settings().to_dict()}


@router.get("/system/errors")
async def system_errors(limit: int = 50):
    """Most recent errors, newest first."""
    entries = list(_error_log)[-limit:] if limit > 0 else []
    entries.reverse()
    return {"errors": entries, "total": len(_error_log)}


@router.delete("/system/errors")
async def clear_system_errors():
    _error_log.clear()
    return {"success": True}
