"""
Shared utilities for the dmp webapp API.

This module contains helpers used across multiple API endpoints.
"""
from .logger import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
