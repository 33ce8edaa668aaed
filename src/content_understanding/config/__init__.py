"""Configuration management for the Content Understanding client.

Key components:
- ContentUnderstandingSettings: Pydantic schema with env var integration
- FrozenConfig: Immutable configuration passed into each component
- resolve_config: Resolve-once entry point
"""

from .api import resolve_config
from .schema import ENV_PREFIX, ContentUnderstandingSettings
from .types import FrozenConfig

__all__ = [
    "ENV_PREFIX",
    "ContentUnderstandingSettings",
    "FrozenConfig",
    "resolve_config",
]
