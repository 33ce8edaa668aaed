"""Exceptions raised by the Content Understanding client.

Every error kind a caller may want to react to differently has its own class:
a local precondition failure never reached the service, a submission failure
was rejected synchronously, an operation failure was reported by the service
after accepting the job, and a timeout means the client stopped waiting.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from content_understanding.core.types import ErrorDetail


class ContentUnderstandingError(Exception):
    """Base exception for all client errors."""


class ConfigurationError(ContentUnderstandingError):
    """Raised when endpoint, API version or credentials are missing or invalid."""


class PreconditionError(ContentUnderstandingError):
    """Raised when a local check fails before anything is sent to the service."""


class MissingStagedResourceError(PreconditionError):
    """Raised when required companion blobs are absent under the target prefix."""

    def __init__(self, missing: tuple[str, ...], prefix: str) -> None:
        self.missing = missing
        self.prefix = prefix
        first = missing[0] if missing else "<unknown>"
        more = f" (and {len(missing) - 1} more)" if len(missing) > 1 else ""
        super().__init__(
            f"Missing staged resource '{first}' under prefix '{prefix}'{more}"
        )


class AuthError(ContentUnderstandingError):
    """Raised when a bearer token cannot be acquired."""


class TransportError(ContentUnderstandingError):
    """Raised for network-level failures while talking to the service."""


class ServiceResponseError(ContentUnderstandingError):
    """Raised when the service answers with a non-success HTTP status."""

    def __init__(self, status_code: int, detail: ErrorDetail, *, url: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        self.url = url
        super().__init__(f"HTTP {status_code}: {detail.render()}")


class SubmissionError(ServiceResponseError):
    """Raised when the initiating call of an operation is rejected."""


class OperationFailedError(ContentUnderstandingError):
    """Raised when a polled operation reaches the Failed terminal state."""

    def __init__(
        self,
        detail: ErrorDetail,
        *,
        handle: str = "",
        envelope: dict[str, Any] | None = None,
    ) -> None:
        self.detail = detail
        self.handle = handle
        self.envelope = envelope or {}
        super().__init__(f"Operation failed: {detail.render()}")


class OperationTimeoutError(ContentUnderstandingError, TimeoutError):
    """Raised when no terminal state is observed before the deadline."""

    def __init__(self, handle: str, timeout: float) -> None:
        self.handle = handle
        self.timeout = timeout
        super().__init__(f"Operation timed out after {timeout:g} seconds: {handle}")


class OperationCancelledError(ContentUnderstandingError):
    """Raised when the caller cancels a poll loop."""

    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"Polling cancelled for operation: {handle}")


class InvalidContentTypeError(ContentUnderstandingError):
    """Raised when a response carries an unexpected content type."""


class StorageError(ContentUnderstandingError):
    """Raised when an object store operation fails."""
