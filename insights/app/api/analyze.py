"""Analyze endpoint: hosts the rate gate for every client process."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from insights.app.core.http_client import get_http_client
from insights.app.core.logging import get_logger
from insights.app.models import AnalyzeRequest, AnalyzeResponse, RequestKind
from insights.app.providers.base import BaseProvider
from insights.app.providers.factory import create_provider
from insights.app.services.generation import GatedGenerationClient
from insights.app.services.rate_gate import RateGate, get_rate_gate

router = APIRouter()
logger = get_logger(__name__)


def get_provider() -> BaseProvider:
    """Provider dependency; reuses the lifespan HTTP client when one is open."""
    return create_provider(http_client=get_http_client())


def get_generation_client(
    provider: BaseProvider = Depends(get_provider),
    gate: RateGate = Depends(get_rate_gate),
) -> GatedGenerationClient:
    """Build the gated client for one request as a FastAPI dependency."""
    return GatedGenerationClient(provider=provider, gate=gate)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: ValidationError) -> str:
    """Blame the request type unless every error sits inside the entry data."""
    locations = [error["loc"] for error in exc.errors()]
    if all(loc and loc[0] in ("entries", "entry") for loc in locations):
        return "Invalid entry data"
    return "Invalid request type"


@router.post("/api/analyze", response_model=None)
async def analyze(
    request: Request,
    client: GatedGenerationClient = Depends(get_generation_client),
) -> JSONResponse:
    """Run one gated generation request.

    Responses:
        200: ``{"content": ..., "type": ...}``
        400: invalid JSON, kind or payload
        429: ``{"error": reason, "retryAfter": seconds, "quotaExhausted": bool}``
        401/403: provider rejected the configured credentials
        500/502: provider failure
    """
    try:
        body = await request.json()
    except ValueError:
        # JSONDecodeError and UnicodeDecodeError
        return _error(400, "Invalid JSON in request body")

    try:
        analyze_request = AnalyzeRequest.model_validate(body)
    except ValidationError as exc:
        return _error(400, _validation_message(exc))

    kind = analyze_request.type
    payload: Dict[str, Any] = {}
    if kind is RequestKind.WEEKLY:
        payload["entries"] = analyze_request.entries
    elif kind is RequestKind.ENTRY:
        payload["entry"] = analyze_request.entry

    result = await client.generate(kind, payload)

    if result.ok:
        return JSONResponse(
            content=AnalyzeResponse(content=result.text, type=kind).model_dump(mode="json")
        )

    if result.status == 429:
        headers = {}
        if result.retry_after is not None:
            headers["Retry-After"] = str(int(result.retry_after))
        return JSONResponse(
            status_code=429,
            content={
                "error": result.reason,
                "retryAfter": result.retry_after,
                "quotaExhausted": result.quota_exhausted,
            },
            headers=headers,
        )

    logger.warning(
        f"Analyze {kind.value} failed: {result.reason}",
        extra={"kind": kind.value, "status_code": result.status},
    )
    if result.network_error:
        return _error(502, result.reason or "AI service unreachable")

    return _error(result.status, result.reason or "AI service unavailable")


@router.get("/api/analyze/status")
async def analyze_status(gate: RateGate = Depends(get_rate_gate)) -> Dict[str, Any]:
    """Report the rate gate's current budget."""
    state = gate.snapshot()
    now = gate.now()
    return {
        "inFlight": state.in_flight,
        "dailyCount": state.daily_count,
        "dailyLimit": gate.requests_per_day,
        "dailyResetIn": max(0, int(state.daily_reset_at - now)),
        "cooldownRemaining": max(0, int(state.cooldown_until - now)),
    }
