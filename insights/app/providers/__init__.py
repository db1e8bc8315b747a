"""Generation providers package.

This package provides:
- Base provider interface (BaseProvider)
- GitHub Models implementation (GitHubModelsProvider)
- Offline mock implementation (MockProvider)
- Provider selection from settings (create_provider)
"""

from insights.app.providers.base import BaseProvider
from insights.app.providers.factory import create_provider
from insights.app.providers.github_models import GitHubModelsProvider
from insights.app.providers.mock import MockProvider

__all__ = [
    "BaseProvider",
    "GitHubModelsProvider",
    "MockProvider",
    "create_provider",
]
