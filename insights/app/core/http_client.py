"""Shared HTTP client management.

The analyze endpoint opens one ``httpx.AsyncClient`` during the application
lifespan and hands it to the generation provider, so every outbound call
carries the configured transport timeouts.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from insights.app.core.config import settings


_shared_http_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient | None:
    """Get the shared HTTP client instance, if the lifespan opened one."""
    return _shared_http_client


def build_timeout() -> httpx.Timeout:
    """Build the transport timeout applied to every outbound call."""
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


def create_http_client(**kwargs) -> httpx.AsyncClient:
    """Create a new HTTP client with default settings.

    Note: The returned client should be closed when done:
        async with create_http_client() as client:
            ...

    Args:
        **kwargs: Extra keyword arguments passed to ``httpx.AsyncClient``
            (e.g. ``transport`` in tests).
    """
    kwargs.setdefault("timeout", build_timeout())
    kwargs.setdefault(
        "limits",
        httpx.Limits(
            max_connections=settings.httpx_max_connections,
            max_keepalive_connections=settings.httpx_max_keepalive_connections,
        ),
    )
    return httpx.AsyncClient(**kwargs)


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client.

    Used in the FastAPI lifespan:

        async with init_http_client():
            yield
    """
    global _shared_http_client

    _shared_http_client = create_http_client()
    try:
        yield _shared_http_client
    finally:
        if _shared_http_client is not None:
            await _shared_http_client.aclose()
            _shared_http_client = None
