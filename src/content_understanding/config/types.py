"""Immutable configuration value passed into every component.

Configuration is resolved once (see ``config.api.resolve_config``) and then
flows explicitly through constructors; nothing reads ambient state later.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from content_understanding.pipeline.poller import PollingPolicy

_SECRET_FIELDS = frozenset(
    {"subscription_key", "training_data_sas_url", "reference_docs_sas_url"}
)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable client configuration.

    Any attempt to modify this object will raise an exception. Secrets are
    redacted from ``str``/``repr`` so configs are safe to log.
    """

    endpoint: str
    api_version: str
    subscription_key: str | None
    user_agent: str
    timeout_seconds: float
    long_running_timeout_seconds: float
    poll_interval_seconds: float
    polling_strategy: Literal["fixed", "exponential"]
    max_poll_interval_seconds: float
    backoff_multiplier: float
    backoff_jitter: float
    training_data_sas_url: str | None = None
    training_data_path: str | None = None
    reference_docs_sas_url: str | None = None
    reference_docs_path: str | None = None

    def __str__(self) -> str:
        """String representation with secrets redacted for safe logging."""
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _SECRET_FIELDS and value:
                value = "[REDACTED]"
            parts.append(f"{f.name}={value!r}")
        return f"FrozenConfig({', '.join(parts)})"

    def __repr__(self) -> str:
        """Representation with secrets redacted for safe debugging."""
        return self.__str__()

    @property
    def service_root(self) -> str:
        return f"{self.endpoint}/contentunderstanding"

    def polling_policy(self) -> PollingPolicy:
        """Build the poll delay policy selected by ``polling_strategy``."""
        from content_understanding.pipeline.poller import (
            ExponentialBackoff,
            FixedInterval,
        )

        if self.polling_strategy == "exponential":
            return ExponentialBackoff(
                initial=self.poll_interval_seconds,
                multiplier=self.backoff_multiplier,
                max_delay=self.max_poll_interval_seconds,
                jitter=self.backoff_jitter,
            )
        return FixedInterval(self.poll_interval_seconds)
