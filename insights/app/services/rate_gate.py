"""Process-wide admission control for the generation endpoint.

The gate is the single source of truth for "may a call happen now". It
tracks the minimum interval between calls, a rolling daily ceiling, a
cooldown window opened by downstream rate-limit signals, and whether a call
is currently in flight. At most one call is ever in flight; a second
attempt is rejected, never queued.

State lives in memory only, so limits reset when the process restarts.
"""

import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from insights.app.core.config import settings
from insights.app.core.logging import get_logger

logger = get_logger(__name__)

DAY_SECONDS = 24 * 60 * 60

REASON_IN_PROGRESS = "Request in progress"
REASON_COOLDOWN = "Rate limit cooldown"
REASON_DAILY_LIMIT = "Daily limit reached"
REASON_TOO_FREQUENT = "Too many requests"


@dataclass
class RateGateState:
    """Mutable gate state. Owned by ``RateGate``; callers only see copies."""
    daily_reset_at: float
    last_request_at: Optional[float] = None
    daily_count: int = 0
    cooldown_until: float = 0.0
    in_flight: bool = False


@dataclass(frozen=True)
class Admission:
    """Result of an admission check."""
    admitted: bool
    reason: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def quota_exhausted(self) -> bool:
        """True when the rejection only clears at the daily reset boundary."""
        return self.reason == REASON_DAILY_LIMIT


ADMITTED = Admission(admitted=True)


class RateGate:
    """Admission controller with interval, daily, cooldown and in-flight rules.

    Usage:
        gate = RateGate()

        admission = gate.try_admit()
        if admission.admitted:
            gate.record_start()
            try:
                ...  # issue exactly one downstream call
            finally:
                gate.record_finish()

    Rules are evaluated in a fixed order and the first match wins:
    in flight, cooldown, daily reset (lazy), daily ceiling, minimum interval.
    """

    def __init__(
        self,
        min_interval_seconds: float = 8.0,
        requests_per_day: int = 30,
        cooldown_seconds: float = 30.0,
        in_progress_retry_after: int = 2,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the gate.

        Args:
            min_interval_seconds: Minimum time between two admitted calls
            requests_per_day: Daily ceiling of admitted calls
            cooldown_seconds: Length of the cooldown after an abuse signal
            in_progress_retry_after: Retry hint while a call is in flight
            clock: Returns the current time in seconds
        """
        self.min_interval_seconds = min_interval_seconds
        self.requests_per_day = requests_per_day
        self.cooldown_seconds = cooldown_seconds
        self.in_progress_retry_after = in_progress_retry_after
        self._clock = clock
        self._state = RateGateState(daily_reset_at=clock() + DAY_SECONDS)
        self._lock = threading.Lock()

    def try_admit(self) -> Admission:
        """Decide whether a call may start now."""
        with self._lock:
            now = self._clock()
            state = self._state

            if state.in_flight:
                return Admission(False, REASON_IN_PROGRESS, self.in_progress_retry_after)

            if now < state.cooldown_until:
                return Admission(False, REASON_COOLDOWN, math.ceil(state.cooldown_until - now))

            if now > state.daily_reset_at:
                state.daily_count = 0
                state.daily_reset_at = now + DAY_SECONDS

            if state.daily_count >= self.requests_per_day:
                return Admission(False, REASON_DAILY_LIMIT, math.ceil(state.daily_reset_at - now))

            if state.last_request_at is not None:
                elapsed = now - state.last_request_at
                if elapsed < self.min_interval_seconds:
                    return Admission(
                        False,
                        REASON_TOO_FREQUENT,
                        math.ceil(self.min_interval_seconds - elapsed),
                    )

            return ADMITTED

    def record_start(self) -> None:
        """Mark an admitted call as started."""
        with self._lock:
            self._state.last_request_at = self._clock()
            self._state.daily_count += 1
            self._state.in_flight = True

    def record_finish(self) -> None:
        """Mark the in-flight call as finished."""
        with self._lock:
            self._state.in_flight = False

    def record_abuse_signal(self) -> None:
        """Open a cooldown window after the provider reported rate limiting."""
        with self._lock:
            self._state.cooldown_until = self._clock() + self.cooldown_seconds
            self._state.in_flight = False
        logger.warning(
            f"Provider rate limit signalled, cooling down for {self.cooldown_seconds:.0f}s",
            extra={"retry_after": self.cooldown_seconds},
        )

    def now(self) -> float:
        """Current time on the gate's clock."""
        return self._clock()

    def snapshot(self) -> RateGateState:
        """Return a copy of the current state for diagnostics."""
        with self._lock:
            return replace(self._state)


# Global gate instance
_rate_gate: Optional[RateGate] = None


def get_rate_gate() -> RateGate:
    """Get the process-wide rate gate, creating it from settings on first use."""
    global _rate_gate
    if _rate_gate is None:
        _rate_gate = RateGate(
            min_interval_seconds=settings.gate_min_interval_seconds,
            requests_per_day=settings.gate_requests_per_day,
            cooldown_seconds=settings.gate_cooldown_seconds,
            in_progress_retry_after=settings.gate_in_progress_retry_after,
        )
    return _rate_gate


def reset_rate_gate() -> None:
    """Reset the global rate gate (mainly for tests)."""
    global _rate_gate
    _rate_gate = None
