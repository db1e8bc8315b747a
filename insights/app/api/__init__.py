"""API endpoints package for the insights application."""

from insights.app.api.analyze import router as analyze_router

__all__ = [
    "analyze_router",
]
