"""Shared fixtures for the insights test suite."""

import asyncio
import os

import pytest

# Keep the suite offline regardless of the developer's environment.
os.environ.setdefault("INSIGHTS_MOCK_PROVIDER", "true")

from insights.app.services.insight_service import reset_insight_service  # noqa: E402
from insights.app.services.rate_gate import RateGate, reset_rate_gate  # noqa: E402


class FakeClock:
    """Deterministic clock whose ``sleep`` advances time instead of waiting."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # Let other tasks run, as a real sleep would.
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gate(clock: FakeClock) -> RateGate:
    return RateGate(
        min_interval_seconds=8,
        requests_per_day=30,
        cooldown_seconds=30,
        in_progress_retry_after=2,
        clock=clock,
    )


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset process-wide singletons before and after each test."""
    reset_rate_gate()
    reset_insight_service()
    yield
    reset_rate_gate()
    reset_insight_service()
