"""Provider selection from application settings."""

from typing import Optional

import httpx

from insights.app.core.config import Settings, settings as default_settings
from insights.app.exceptions import ServiceNotConfiguredError
from insights.app.providers.base import BaseProvider
from insights.app.providers.github_models import GitHubModelsProvider
from insights.app.providers.mock import MockProvider


def create_provider(
    config: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> BaseProvider:
    """Create the configured generation provider.

    Args:
        config: Settings to read from (defaults to the global settings)
        http_client: Optional shared HTTP client

    Returns:
        MockProvider when mock mode is enabled, GitHubModelsProvider otherwise

    Raises:
        ServiceNotConfiguredError: If mock mode is off and no GitHub token is set
    """
    config = config or default_settings

    if config.mock_provider:
        return MockProvider()

    if not config.github_token:
        raise ServiceNotConfiguredError("GITHUB_TOKEN is required for the generation provider")

    return GitHubModelsProvider(
        base_url=config.generation_base_url,
        api_key=config.github_token,
        http_client=http_client,
        timeout=config.httpx_read_timeout,
    )
