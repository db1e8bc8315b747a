"""GitHub Models provider.

GitHub Models exposes an OpenAI-compatible chat completions endpoint
authenticated with a GitHub token.
"""

from typing import Any, Dict, Optional

import httpx

from insights.app.providers.base import BaseProvider


class GitHubModelsProvider(BaseProvider):
    """GitHub Models chat completion provider.

    If http_client is provided, it will be used for all requests (connection reuse).
    If not, a new client is created per request.
    """

    name = "github-models"
    API_VERSION = "2022-11-28"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        super().__init__(base_url, api_key, http_client, timeout)
        self.headers["Accept"] = "application/vnd.github+json"
        self.headers["X-GitHub-Api-Version"] = self.API_VERSION

    async def chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming chat completion request.

        Args:
            payload: The request payload (model, messages, temperature, etc.)

        Returns:
            The JSON response from the API

        Raises:
            httpx.HTTPStatusError: If the API returns an error
        """
        url = self._get_endpoint_url("/chat/completions")

        async with self._client_context() as client:
            resp = await client.post(url, headers=self.headers, json=payload)
            resp.raise_for_status()
            return resp.json()
