"""Generation clients: the single outbound operation of the pipeline.

A ``GenerationClient`` turns one request (kind + payload) into either the
generated text or a structured failure carrying an HTTP-style status, an
optional retry-after hint and a quota-exhausted flag. Two implementations:

- ``GatedGenerationClient`` runs in-process. It consults the rate gate and
  issues exactly one provider call per admitted attempt. The analyze
  endpoint is built on it.
- ``RemoteGenerationClient`` posts to the analyze endpoint of another
  process and maps the HTTP response back into a ``GenerationResult``.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from insights.app.core.config import Settings, settings as default_settings
from insights.app.core.http_client import create_http_client
from insights.app.core.logging import get_logger
from insights.app.models import EntryRecord, RequestKind
from insights.app.providers.base import BaseProvider
from insights.app.services.prompts import build_messages
from insights.app.services.rate_gate import Admission, RateGate

logger = get_logger(__name__)

REASON_PROVIDER_RATE_LIMITED = "Rate limited"
REASON_AUTH_FAILED = "Service authentication failed"
REASON_UNAVAILABLE = "AI service unavailable"
REASON_UNREACHABLE = "AI service unreachable"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation attempt."""
    text: Optional[str] = None
    status: int = 200
    reason: Optional[str] = None
    retry_after: Optional[float] = None
    quota_exhausted: bool = False
    network_error: bool = False

    @property
    def ok(self) -> bool:
        return self.text is not None and not self.network_error and self.status < 400

    @classmethod
    def success(cls, text: str) -> "GenerationResult":
        return cls(text=text)

    @classmethod
    def rejected(cls, admission: Admission) -> "GenerationResult":
        return cls(
            status=429,
            reason=admission.reason,
            retry_after=admission.retry_after,
            quota_exhausted=admission.quota_exhausted,
        )

    @classmethod
    def network_failure(cls, reason: str) -> "GenerationResult":
        return cls(status=503, reason=reason, network_error=True)


class GenerationClient(ABC):
    """Issues one generation request per call."""

    @abstractmethod
    async def generate(
        self,
        kind: Union[RequestKind, str],
        payload: Optional[Mapping[str, Any]] = None,
    ) -> GenerationResult:
        """Run one generation attempt.

        Returns a failed ``GenerationResult`` for rejections, downstream
        errors and transport failures instead of raising.
        """


class GatedGenerationClient(GenerationClient):
    """In-process client guarded by the rate gate."""

    def __init__(
        self,
        provider: BaseProvider,
        gate: RateGate,
        config: Optional[Settings] = None,
    ):
        """Initialize the client.

        Args:
            provider: Provider that performs the chat completion
            gate: Rate gate consulted before every call
            config: Settings for model parameters (defaults to global settings)
        """
        self.provider = provider
        self.gate = gate
        self.config = config or default_settings

    def _build_body(self, messages: list) -> Dict[str, Any]:
        return {
            "model": self.config.generation_model,
            "messages": messages,
            "temperature": self.config.generation_temperature,
            "max_tokens": self.config.generation_max_tokens,
            "top_p": self.config.generation_top_p,
        }

    def _provider_error(self, status: int) -> GenerationResult:
        if status == 429:
            self.gate.record_abuse_signal()
            return GenerationResult(
                status=429,
                reason=REASON_PROVIDER_RATE_LIMITED,
                retry_after=self.gate.cooldown_seconds,
            )
        if status in (401, 403):
            logger.error(f"Provider rejected credentials ({status})", extra={"status_code": status})
            return GenerationResult(status=status, reason=REASON_AUTH_FAILED)
        logger.error(f"Provider returned {status}", extra={"status_code": status})
        return GenerationResult(status=500, reason=REASON_UNAVAILABLE)

    async def generate(
        self,
        kind: Union[RequestKind, str],
        payload: Optional[Mapping[str, Any]] = None,
    ) -> GenerationResult:
        # Invalid requests raise here, before they can consume any quota.
        messages = build_messages(kind, dict(payload or {}))

        admission = self.gate.try_admit()
        if not admission.admitted:
            logger.info(
                f"Generation rejected: {admission.reason}",
                extra={"reason": admission.reason, "retry_after": admission.retry_after},
            )
            return GenerationResult.rejected(admission)

        self.gate.record_start()
        started = time.monotonic()
        try:
            response = await self.provider.chat_completion(self._build_body(messages))
        except httpx.HTTPStatusError as exc:
            return self._provider_error(exc.response.status_code)
        except httpx.TransportError as exc:
            logger.warning(f"Provider request failed: {type(exc).__name__}: {exc}")
            return GenerationResult.network_failure(REASON_UNREACHABLE)
        finally:
            self.gate.record_finish()

        duration_ms = round((time.monotonic() - started) * 1000, 1)
        logger.info(
            "Generation completed",
            extra={"kind": RequestKind(kind).value, "duration_ms": duration_ms},
        )
        return GenerationResult.success(self.provider.extract_content(response))


def _to_wire(value: Any) -> Any:
    if isinstance(value, EntryRecord):
        return value.model_dump(exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    return value


class RemoteGenerationClient(GenerationClient):
    """Client that calls the analyze endpoint over HTTP."""

    def __init__(
        self,
        url: str,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            url: Full URL of ``POST /api/analyze``
            http_client: Optional shared HTTP client; a client with the
                configured timeouts is created per call otherwise
        """
        self.url = url
        self._http_client = http_client

    async def _post(self, body: Dict[str, Any]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.url, json=body)
        async with create_http_client() as client:
            return await client.post(self.url, json=body)

    async def generate(
        self,
        kind: Union[RequestKind, str],
        payload: Optional[Mapping[str, Any]] = None,
    ) -> GenerationResult:
        body = {"type": RequestKind(kind).value}
        body.update({key: _to_wire(value) for key, value in (payload or {}).items()})

        try:
            response = await self._post(body)
        except httpx.TransportError as exc:
            logger.warning(f"Analyze endpoint unreachable: {type(exc).__name__}: {exc}")
            return GenerationResult.network_failure(str(exc) or type(exc).__name__)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_success:
            return GenerationResult.success(str(data.get("content") or ""))

        # The endpoint answers 502 when it could not reach the provider.
        if response.status_code == 502:
            return GenerationResult(
                status=502,
                reason=data.get("error") or REASON_UNREACHABLE,
                network_error=True,
            )

        retry_after = data.get("retryAfter")
        if retry_after is None and "Retry-After" in response.headers:
            try:
                retry_after = float(response.headers["Retry-After"])
            except ValueError:
                retry_after = None

        return GenerationResult(
            status=response.status_code,
            reason=data.get("error"),
            retry_after=retry_after,
            quota_exhausted=bool(data.get("quotaExhausted")),
        )
