"""Serializing request queue for generation calls.

All submissions from one process flow through a single worker task reading
a bounded queue of size one, so a submission never starts before the
previous one (including every retry) has resolved and submissions complete
in FIFO order. This keeps concurrent callers from racing the shared daily
quota.

Per attempt the queue asks the generation client for text and reacts to the
outcome:

- gate rejections "in progress" / "too many requests" are scheduling delays:
  sleep for the hint and try again without spending an attempt;
- quota exhaustion is terminal for the submission;
- throttling (provider 429 or gate cooldown) is retried with backoff up to
  the attempt ceiling;
- network failures and other errors are not retried.

``submit`` resolves to the raw text or ``None``; the reason for the last
failure is kept in ``last_error`` for display.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from insights.app.core.logging import get_log_context, get_logger
from insights.app.exceptions import InsightsException
from insights.app.models import RequestKind
from insights.app.services.backoff import BackoffPolicy
from insights.app.services.generation import GenerationClient, GenerationResult
from insights.app.services.rate_gate import REASON_IN_PROGRESS, REASON_TOO_FREQUENT

logger = get_logger(__name__)

SCHEDULING_REASONS = frozenset((REASON_IN_PROGRESS, REASON_TOO_FREQUENT))
DEFAULT_SCHEDULE_WAIT_SECONDS = 5.0

ERROR_QUOTA_EXHAUSTED = "Rate limit: Daily quota exhausted"
ERROR_NETWORK = "Network error"
ERROR_UNEXPECTED = "API error: Unexpected failure"

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class QueuedRequest:
    """One submission travelling through the queue. Never persisted."""
    kind: RequestKind
    payload: Dict[str, Any] = field(default_factory=dict)
    attempt: int = 1
    future: Optional[asyncio.Future] = field(default=None, repr=False)


_STOP = object()


class RequestQueue:
    """Single-worker queue that serializes, schedules and retries requests.

    Usage:
        queue = RequestQueue(client)
        text = await queue.submit(RequestKind.QUOTE)
        if text is None:
            print(queue.last_error)
        await queue.close()
    """

    def __init__(
        self,
        client: GenerationClient,
        policy: Optional[BackoffPolicy] = None,
        max_schedule_waits: int = 10,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize the queue.

        Args:
            client: Generation client used for every attempt
            policy: Backoff policy for throttled attempts
            max_schedule_waits: Bound on scheduling waits per submission
            sleep: Coroutine used for all waits (injectable for tests)
        """
        self.client = client
        self.policy = policy or BackoffPolicy()
        self.max_schedule_waits = max_schedule_waits
        self._sleep = sleep
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

        self.last_error: Optional[str] = None
        self.consecutive_failures = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def _ensure_worker(self) -> asyncio.Queue:
        if not self.running:
            self._queue = asyncio.Queue(maxsize=1)
            self._worker = asyncio.create_task(self._run(self._queue), name="insights-request-queue")
        return self._queue

    async def submit(
        self,
        kind: Union[RequestKind, str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Queue a request and wait for its outcome.

        Returns:
            The raw generated text, or None when no text was obtained
            (see ``last_error``).

        Raises:
            InsightsException: If the request itself is invalid (unknown
                kind or missing payload)
        """
        request = QueuedRequest(kind=RequestKind(kind), payload=dict(payload or {}))
        request.future = asyncio.get_running_loop().create_future()
        await self._ensure_worker().put(request)
        return await request.future

    async def close(self) -> None:
        """Stop the worker once every already queued request has resolved."""
        if not self.running:
            return
        await self._queue.put(_STOP)
        await self._worker
        self._worker = None
        self._queue = None

    async def _run(self, queue: asyncio.Queue) -> None:
        while True:
            request = await queue.get()
            try:
                if request is _STOP:
                    return
                try:
                    result = await self._process(request)
                except InsightsException as exc:
                    # Caller contract violation: raise it from submit().
                    if not request.future.done():
                        request.future.set_exception(exc)
                    continue
                except Exception:
                    logger.exception(
                        "Unexpected failure while processing request",
                        extra=get_log_context(kind=request.kind.value, attempt=request.attempt),
                    )
                    self._record_failure(ERROR_UNEXPECTED)
                    result = None
                if not request.future.done():
                    request.future.set_result(result)
            finally:
                queue.task_done()

    def _record_failure(self, error: str) -> None:
        self.last_error = error
        self.consecutive_failures += 1

    async def _process(self, request: QueuedRequest) -> Optional[str]:
        schedule_waits = 0

        while True:
            context = get_log_context(kind=request.kind.value, attempt=request.attempt)
            result: GenerationResult = await self.client.generate(request.kind, request.payload)

            if result.ok:
                self.consecutive_failures = 0
                return result.text

            if result.network_error:
                logger.warning("Generation failed: network error", extra=context)
                self._record_failure(ERROR_NETWORK)
                return None

            if result.quota_exhausted:
                logger.warning("Generation stopped: daily quota exhausted", extra=context)
                self._record_failure(ERROR_QUOTA_EXHAUSTED)
                return None

            if result.status != 429:
                logger.warning(f"Generation failed with status {result.status}", extra=context)
                self._record_failure(f"API error: {result.status}")
                return None

            reason = result.reason or "Too many requests"

            if reason in SCHEDULING_REASONS:
                if schedule_waits >= self.max_schedule_waits:
                    self._record_failure(f"Rate limit: {reason}")
                    return None
                schedule_waits += 1
                wait = result.retry_after if result.retry_after is not None else DEFAULT_SCHEDULE_WAIT_SECONDS
                logger.debug(f"{reason}, waiting {wait}s", extra=context)
                await self._sleep(max(0.0, float(wait)))
                continue

            self._record_failure(f"Rate limit: {reason}")
            decision = self.policy.decide(request.attempt, result.retry_after, error=self.last_error)
            if not decision.should_retry:
                logger.warning(
                    f"Max retries ({self.policy.max_retries}) exceeded: {reason}", extra=context
                )
                return None

            logger.warning(
                f"Retry {request.attempt}/{self.policy.max_retries} after {reason}. "
                f"Waiting {decision.delay_ms / 1000:.2f}s...",
                extra=context,
            )
            await self._sleep(decision.delay_ms / 1000)
            request.attempt += 1
