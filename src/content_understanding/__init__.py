"""Async client for the Azure AI Content Understanding service."""

import importlib.metadata
import logging

from content_understanding.auth import AzureTokenProvider, Credentials
from content_understanding.client import ContentUnderstandingClient
from content_understanding.config import FrozenConfig, resolve_config
from content_understanding.core.types import (
    AnalyzerPage,
    ErrorDetail,
    KnowledgeSource,
    OperationStatus,
    RequestEnvelope,
    StagingMode,
    StagingReport,
    SubmittedOperation,
    TrainingDataSource,
)
from content_understanding.exceptions import (
    AuthError,
    ConfigurationError,
    ContentUnderstandingError,
    InvalidContentTypeError,
    MissingStagedResourceError,
    OperationCancelledError,
    OperationFailedError,
    OperationTimeoutError,
    PreconditionError,
    ServiceResponseError,
    StorageError,
    SubmissionError,
    TransportError,
)
from content_understanding.frontdoor import (
    analyze_file,
    create_analyzer,
    create_analyzer_from_staged_data,
    open_client,
)
from content_understanding.pipeline.poller import (
    ExponentialBackoff,
    FixedInterval,
    LROPoller,
    PollingPolicy,
)
from content_understanding.pipeline.request_builder import (
    build_request,
    knowledge_source_pointer,
    training_data_pointer,
)
from content_understanding.telemetry import TelemetryContext, TelemetryReporter

# Version handling
try:
    __version__ = importlib.metadata.version("content-understanding")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Client
    "ContentUnderstandingClient",
    "analyze_file",
    "create_analyzer",
    "create_analyzer_from_staged_data",
    "open_client",
    # Configuration and auth
    "FrozenConfig",
    "resolve_config",
    "Credentials",
    "AzureTokenProvider",
    # Requests and results
    "AnalyzerPage",
    "ErrorDetail",
    "KnowledgeSource",
    "OperationStatus",
    "RequestEnvelope",
    "StagingMode",
    "StagingReport",
    "SubmittedOperation",
    "TrainingDataSource",
    "build_request",
    "knowledge_source_pointer",
    "training_data_pointer",
    # Polling
    "ExponentialBackoff",
    "FixedInterval",
    "LROPoller",
    "PollingPolicy",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    # Exceptions
    "AuthError",
    "ConfigurationError",
    "ContentUnderstandingError",
    "InvalidContentTypeError",
    "MissingStagedResourceError",
    "OperationCancelledError",
    "OperationFailedError",
    "OperationTimeoutError",
    "PreconditionError",
    "ServiceResponseError",
    "StorageError",
    "SubmissionError",
    "TransportError",
]
