"""Public API for the configuration system.

Precedence: Programmatic > Environment (.env file optional) > Defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from content_understanding.exceptions import ConfigurationError

from .schema import ENV_PREFIX, ContentUnderstandingSettings
from .types import FrozenConfig

log = logging.getLogger(__name__)


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    env_file: str | Path | None = None,
) -> FrozenConfig:
    """Resolve configuration from all sources with proper precedence.

    Args:
        programmatic: Dictionary of programmatic overrides (highest precedence).
            Only known configuration fields are used.
        env_file: Optional path to a .env file read in addition to the process
            environment. Process environment wins over the file.

    Returns:
        FrozenConfig ready to pass into the client.

    Raises:
        ConfigurationError: If the env file is missing or validation fails.

    Example:
        config = resolve_config({"endpoint": "https://my-resource.services.ai.azure.com"})
    """
    known = ContentUnderstandingSettings.model_fields
    overrides = {k: v for k, v in (programmatic or {}).items() if k in known}
    ignored = sorted(set(programmatic or {}) - set(overrides))
    if ignored:
        log.debug("Ignoring unknown configuration fields: %s", ", ".join(ignored))

    if env_file is not None and not Path(env_file).exists():
        raise ConfigurationError(f"Environment file not found: {env_file}")

    try:
        settings = ContentUnderstandingSettings(_env_file=env_file, **overrides)  # type: ignore[call-arg]
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration (environment prefix {ENV_PREFIX}): {e}"
        ) from e

    config = FrozenConfig(**settings.model_dump())
    log.debug("Resolved configuration: %s", config)
    return config
