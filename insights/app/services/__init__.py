"""Services package for the insight pipeline.

This package provides:
- Admission control (RateGate)
- Backoff policy (BackoffPolicy, compute_delay)
- Generation clients (GatedGenerationClient, RemoteGenerationClient)
- Serializing request queue (RequestQueue)
- Response sanitizer (parse_weekly, parse_entry, repair_json)
- Insight service facade (InsightService)
"""

from insights.app.services.backoff import BackoffPolicy, RetryDecision, compute_delay
from insights.app.services.generation import (
    GatedGenerationClient,
    GenerationClient,
    GenerationResult,
    RemoteGenerationClient,
)
from insights.app.services.insight_service import (
    InsightService,
    InsightStatus,
    create_insight_service,
    get_insight_service,
    reset_insight_service,
)
from insights.app.services.rate_gate import (
    Admission,
    RateGate,
    RateGateState,
    get_rate_gate,
    reset_rate_gate,
)
from insights.app.services.request_queue import QueuedRequest, RequestQueue
from insights.app.services.sanitizer import (
    parse_entry,
    parse_weekly,
    repair_json,
    strip_code_fence,
)

__all__ = [
    # Backoff
    "BackoffPolicy",
    "RetryDecision",
    "compute_delay",
    # Generation
    "GatedGenerationClient",
    "GenerationClient",
    "GenerationResult",
    "RemoteGenerationClient",
    # Facade
    "InsightService",
    "InsightStatus",
    "create_insight_service",
    "get_insight_service",
    "reset_insight_service",
    # Rate gate
    "Admission",
    "RateGate",
    "RateGateState",
    "get_rate_gate",
    "reset_rate_gate",
    # Queue
    "QueuedRequest",
    "RequestQueue",
    # Sanitizer
    "parse_entry",
    "parse_weekly",
    "repair_json",
    "strip_code_fence",
]
