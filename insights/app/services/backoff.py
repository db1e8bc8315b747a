"""Backoff policy for retrying throttled generation requests.

The policy only maps an attempt number (and an optional server hint) to a
delay. The retry ceiling is enforced by the request queue, which stops
consulting the policy once a submission has used up its attempts.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of consulting the policy for one failed attempt."""
    should_retry: bool
    delay_ms: int = 0
    terminal_error: Optional[str] = None


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff that defers to server retry hints.

    Attributes:
        base_delay_ms: Delay before the first retry in milliseconds (default: 8000)
        max_retries: Additional attempts allowed after the first (default: 2)

    Example:
        >>> policy = BackoffPolicy(base_delay_ms=1000)
        >>> policy.compute_delay(attempt=3)
        4000
    """

    base_delay_ms: int = 8000
    max_retries: int = 2

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def compute_delay(self, attempt: int, server_hint_seconds: Optional[float] = None) -> int:
        """Calculate the wait before retrying after ``attempt`` failed.

        An explicit server hint wins and is used as-is (never negative).
        Otherwise: delay = base_delay_ms * 2^(attempt - 1), attempt starting at 1.

        Args:
            attempt: The attempt that just failed (1-indexed)
            server_hint_seconds: Retry-after hint supplied by the downstream call

        Returns:
            Delay in milliseconds
        """
        if server_hint_seconds is not None:
            return max(0, int(round(server_hint_seconds * 1000)))
        return self.base_delay_ms * 2 ** (max(attempt, 1) - 1)

    def decide(
        self,
        attempt: int,
        server_hint_seconds: Optional[float] = None,
        error: Optional[str] = None,
    ) -> RetryDecision:
        """Decide whether a throttled attempt should be retried and after how long."""
        if attempt >= self.max_attempts:
            return RetryDecision(should_retry=False, terminal_error=error)
        return RetryDecision(
            should_retry=True,
            delay_ms=self.compute_delay(attempt, server_hint_seconds),
        )


def compute_delay(
    attempt: int,
    server_hint_seconds: Optional[float] = None,
    base_delay_ms: int = 8000,
) -> int:
    """Module-level shortcut for ``BackoffPolicy(base_delay_ms).compute_delay``."""
    return BackoffPolicy(base_delay_ms=base_delay_ms).compute_delay(attempt, server_hint_seconds)
