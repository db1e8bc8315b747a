"""Mock provider for offline development and tests.

This provider returns canned insight payloads without making external API
calls. It is selected when

    INSIGHTS_MOCK_PROVIDER=true
"""

import asyncio
import json
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional

import httpx

from insights.app.providers.base import BaseProvider


MOCK_WEEKLY = {
    "themes": ["Balancing work and rest", "Reconnecting with friends"],
    "emotionalPatterns": [
        {
            "emotion": "calm",
            "frequency": 0.6,
            "trend": "increasing",
            "context": "Evenings after a walk outside",
        }
    ],
    "achievements": ["Kept a daily writing habit"],
    "improvements": ["Protect time for sleep"],
    "suggestions": ["Plan one screen-free evening"],
    "motivationalInsight": "You are noticing what restores you, and that awareness is already changing your week.",
    "actionSteps": ["Walk after lunch twice", "Message one friend", "Write a short gratitude note"],
}

MOCK_ENTRY = {
    "keyThemes": ["Self-care", "Work pressure"],
    "emotionalInsights": ["Tension eased once the task was written down"],
    "personalGrowth": ["Naming stressors early"],
    "patterns": ["Evening reflection lowers stress"],
    "suggestions": ["Break tomorrow's work into three steps"],
    "motivationalNote": "You handled a heavy day with more patience than you give yourself credit for.",
    "reflection": "What would today look like if you treated it as practice rather than a test?",
}

MOCK_QUOTE = "Every page you write is a quiet conversation with who you are becoming."


class MockProvider(BaseProvider):
    """Mock provider that returns simulated chat completion responses.

    The kind of canned payload is picked from the user prompt: prompts asking
    for ``keyThemes`` get an entry insight, prompts asking for ``themes`` get
    a weekly insight, anything else gets a quote.

    ``statuses`` scripts the HTTP status of successive calls, which lets tests
    simulate provider throttling (429) before a success.
    """

    name = "mock"

    def __init__(
        self,
        base_url: str = "http://mock.provider",
        api_key: str = "mock-key",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        delay: float = 0.0,
        statuses: Optional[Iterable[int]] = None,
    ):
        super().__init__(base_url, api_key, http_client, timeout)
        self.delay = delay
        self._statuses: List[int] = list(statuses or [])
        self.calls: List[Dict[str, Any]] = []

    def _generate_content(self, payload: Dict[str, Any]) -> str:
        user_message = ""
        for msg in reversed(payload.get("messages", [])):
            if msg.get("role") == "user":
                user_message = msg.get("content", "")
                break

        if '"keyThemes"' in user_message:
            return json.dumps(MOCK_ENTRY, indent=2)
        if '"themes"' in user_message:
            return json.dumps(MOCK_WEEKLY, indent=2)
        return MOCK_QUOTE

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Return a mock chat completion, or raise the next scripted error status."""
        self.calls.append(payload)
        if self.delay:
            await asyncio.sleep(self.delay)

        status = self._statuses.pop(0) if self._statuses else 200
        if status >= 400:
            request = httpx.Request("POST", self._get_endpoint_url("/chat/completions"))
            response = httpx.Response(status, request=request, json={"error": "mock failure"})
            raise httpx.HTTPStatusError(
                f"Mock provider returned {status}", request=request, response=response
            )

        return {
            "id": f"chatcmpl-{uuid.uuid4().hex[:24]}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": payload.get("model", "mock-model"),
            "choices": [{
                "index": 0,
                "message": {"role": "assistant", "content": self._generate_content(payload)},
                "finish_reason": "stop",
            }],
        }
