from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from insights.app.api.analyze import router as analyze_router
from insights.app.core.config import settings
from insights.app.core.http_client import init_http_client
from insights.app.core.logging import get_logger, setup_logging
from insights.app.exceptions import InsightsException
from insights.app.services.rate_gate import get_rate_gate


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Open the shared HTTP client on startup and close it on shutdown."""
        async with init_http_client() as http_client:
            gate = get_rate_gate()
            logger.info(
                "Application startup complete",
                extra={
                    "requests_per_day": gate.requests_per_day,
                    "min_interval_seconds": gate.min_interval_seconds,
                    "mock_provider": settings.mock_provider,
                },
            )
            yield {"http_client": http_client}

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Journal Insights",
        description="Rate-limited AI insight generation for journal entries",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Retry-After"],
        max_age=600,
    )

    app.include_router(analyze_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness check with the generator mode."""
        return {
            "status": "ok",
            "provider": "mock" if settings.mock_provider else "github-models",
        }

    @app.exception_handler(InsightsException)
    async def insights_exception_handler(request: Request, exc: InsightsException) -> JSONResponse:
        """Map InsightsException subclasses to their HTTP status."""
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client; full details are logged.
        """
        logger.exception(
            f"Unhandled exception on {request.url.path}",
            extra={
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
            },
        )
        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Failed to process request",
                    "message": str(exc),
                    "exception_type": type(exc).__name__,
                },
            )
        return JSONResponse(status_code=500, content={"error": "Failed to process request"})

    return app


# Create the application instance
app = create_app()
