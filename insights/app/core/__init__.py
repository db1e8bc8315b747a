"""Core utilities for the insights application."""

from insights.app.core.config import Settings, settings
from insights.app.core.http_client import create_http_client, get_http_client, init_http_client
from insights.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "create_http_client",
    "get_http_client",
    "init_http_client",
    "get_log_context",
    "get_logger",
    "setup_logging",
]
