"""Async client for the Content Understanding service.

``ContentUnderstandingClient`` wires the components of one operation flow:

    staging check -> request builder -> submitter -> poller -> decoder

``begin_*`` methods stop after submission and return the operation handle;
the plain methods also poll to a terminal state and return the Succeeded
envelope. Resource management calls (get/list/delete) are synchronous on the
service side and do not poll.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
import logging
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self

import httpx

from content_understanding.auth import Credentials, TokenProvider
from content_understanding.constants import NETWORK_TIMEOUT, PREBUILT_DOCUMENT_ANALYZER_ID
from content_understanding.core.types import (
    AnalyzerPage,
    JSONObject,
    KnowledgeSource,
    StagingMode,
    SubmittedOperation,
    TrainingDataSource,
)
from content_understanding.exceptions import ConfigurationError, InvalidContentTypeError
from content_understanding.pipeline.poller import LROPoller
from content_understanding.pipeline.request_builder import (
    batch_inputs_body,
    build_request,
    knowledge_source_pointer,
    training_data_pointer,
    url_body,
)
from content_understanding.pipeline.submitter import OperationSubmitter
from content_understanding.storage.staging import validate_staged_resources
from content_understanding.storage.uploads import (
    upload_reference_documents,
    upload_training_data,
)
from content_understanding.telemetry import TelemetryContext

if TYPE_CHECKING:
    from content_understanding.config import FrozenConfig
    from content_understanding.storage.gateway import ObjectStoreGateway
    from content_understanding.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


class ContentUnderstandingClient:
    """Client for analyzers, classifiers and their long-running operations.

    Args:
        config: Resolved configuration.
        http_client: Optional shared ``httpx.AsyncClient``. When omitted the
            client creates one and closes it in ``aclose``.
        credentials: Explicit credentials; otherwise built from the config's
            subscription key and ``token_provider``.
        token_provider: Zero-argument callable returning a bearer token.
        clock, sleep: Injected into the poller (tests use fakes).
    """

    def __init__(
        self,
        config: FrozenConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        credentials: Credentials | None = None,
        token_provider: TokenProvider | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.config = config
        self._credentials = credentials or Credentials.from_config(config, token_provider)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=NETWORK_TIMEOUT)
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()
        self._submitter = OperationSubmitter(
            self._http, config, self._credentials, telemetry=self._telemetry
        )
        poller_kwargs: dict[str, Any] = {}
        if clock is not None:
            poller_kwargs["clock"] = clock
        if sleep is not None:
            poller_kwargs["sleep"] = sleep
        self._poller = LROPoller(
            self._submitter,
            policy=config.polling_policy(),
            timeout=config.timeout_seconds,
            telemetry=self._telemetry,
            **poller_kwargs,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # --- URLs ---

    def _url(self, path: str) -> str:
        return f"{self.config.service_root}/{path}?api-version={self.config.api_version}"

    def analyzer_url(self, analyzer_id: str) -> str:
        return self._url(f"analyzers/{_require_id(analyzer_id, 'analyzer_id')}")

    def analyze_url(self, analyzer_id: str) -> str:
        return self._url(f"analyzers/{_require_id(analyzer_id, 'analyzer_id')}:analyze")

    def classifier_url(self, classifier_id: str) -> str:
        return self._url(f"classifiers/{_require_id(classifier_id, 'classifier_id')}")

    def classify_url(self, classifier_id: str) -> str:
        return self._url(
            f"classifiers/{_require_id(classifier_id, 'classifier_id')}:classify"
        )

    # --- Polling ---

    async def poll_result(
        self,
        operation: SubmittedOperation | str,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Poll a submitted operation (or raw handle) to its terminal state."""
        handle = operation.handle if isinstance(operation, SubmittedOperation) else operation
        if not handle:
            raise ValueError("Operation has no Operation-Location handle to poll")
        return await self._poller.poll(handle, timeout=timeout, cancel_event=cancel_event)

    def _timeout(self, timeout: float | None, *, long_running: bool) -> float:
        if timeout is not None:
            return timeout
        if long_running:
            return self.config.long_running_timeout_seconds
        return self.config.timeout_seconds

    # --- Analyzers ---

    async def begin_create_analyzer(
        self,
        analyzer_id: str,
        template: JSONObject,
        *,
        training_data: TrainingDataSource | None = None,
        knowledge_source: KnowledgeSource | None = None,
    ) -> SubmittedOperation:
        """Submit a create/replace request for ``analyzer_id``."""
        envelope = build_request(
            template, training_data=training_data, knowledge_source=knowledge_source
        )
        operation = await self._submitter.submit(
            "PUT", self.analyzer_url(analyzer_id), json=envelope.to_json()
        )
        log.info("Analyzer %s create request accepted.", analyzer_id)
        return operation

    async def create_analyzer(
        self,
        analyzer_id: str,
        template: JSONObject,
        *,
        training_data: TrainingDataSource | None = None,
        knowledge_source: KnowledgeSource | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Create an analyzer and wait for the operation to succeed."""
        operation = await self.begin_create_analyzer(
            analyzer_id,
            template,
            training_data=training_data,
            knowledge_source=knowledge_source,
        )
        return await self.poll_result(
            operation,
            timeout=self._timeout(timeout, long_running=knowledge_source is not None),
            cancel_event=cancel_event,
        )

    async def create_analyzer_from_staged_data(
        self,
        analyzer_id: str,
        template: JSONObject,
        *,
        local_dir: str | Path,
        gateway: ObjectStoreGateway,
        mode: StagingMode,
        container_url: str | None = None,
        prefix: str | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Validate staged blobs, then create an analyzer pointing at them.

        Nothing is sent to the service if the staging check fails.
        ``container_url`` and ``prefix`` default to the configured training
        data location (standard mode) or reference docs location (pro modes).

        Raises:
            ConfigurationError: If no container URL or prefix is available.
            MissingStagedResourceError: If a required blob is absent.
        """
        container_url, prefix = self.staged_data_location(
            mode, container_url=container_url, prefix=prefix
        )
        await validate_staged_resources(local_dir, prefix, gateway, mode)
        if mode is StagingMode.STANDARD_TRAINING:
            return await self.create_analyzer(
                analyzer_id,
                template,
                training_data=training_data_pointer(container_url, prefix),
                timeout=timeout,
                cancel_event=cancel_event,
            )
        return await self.create_analyzer(
            analyzer_id,
            template,
            knowledge_source=knowledge_source_pointer(container_url, prefix),
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def staged_data_location(
        self,
        mode: StagingMode,
        *,
        container_url: str | None = None,
        prefix: str | None = None,
    ) -> tuple[str, str]:
        """Resolve the container SAS URL and prefix for ``mode``.

        Explicit arguments win over the configured defaults.
        """
        if mode is StagingMode.STANDARD_TRAINING:
            default_url = self.config.training_data_sas_url
            default_prefix = self.config.training_data_path
            setting = "training_data"
        else:
            default_url = self.config.reference_docs_sas_url
            default_prefix = self.config.reference_docs_path
            setting = "reference_docs"
        container_url = container_url or default_url
        prefix = prefix or default_prefix
        if not container_url or not prefix:
            raise ConfigurationError(
                f"No staged data location for {mode.value}: pass container_url and "
                f"prefix or set {setting}_sas_url and {setting}_path."
            )
        return container_url, prefix

    async def begin_analyze(
        self, analyzer_id: str, file_location: str | Path
    ) -> SubmittedOperation:
        """Start analysis of a local file, a local folder (batch) or a URL."""
        operation = await self._submitter.submit(
            "POST", self.analyze_url(analyzer_id), **_input_payload(file_location)
        )
        log.info("Analyzing %s with analyzer: %s", file_location, analyzer_id)
        return operation

    async def analyze(
        self,
        analyzer_id: str,
        file_location: str | Path,
        *,
        long_running: bool = False,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Analyze and wait for the result.

        Set ``long_running`` for video/audio or pro mode inputs to use the
        longer configured budget.
        """
        operation = await self.begin_analyze(analyzer_id, file_location)
        return await self.poll_result(
            operation,
            timeout=self._timeout(timeout, long_running=long_running),
            cancel_event=cancel_event,
        )

    async def get_prebuilt_document_analyze_result(
        self, file_location: str | Path
    ) -> dict[str, Any]:
        return await self.analyze(PREBUILT_DOCUMENT_ANALYZER_ID, file_location)

    async def get_operation_image(
        self, operation: SubmittedOperation | str, image_id: str
    ) -> bytes:
        """Download a keyframe/face image produced by an analyze operation."""
        handle = operation.handle if isinstance(operation, SubmittedOperation) else operation
        if not handle:
            raise ValueError("Operation location not found in the analyzer response header.")
        base = handle.split("?api-version")[0]
        url = f"{base}/files/{image_id}?api-version={self.config.api_version}"
        response = await self._submitter.request("GET", url)
        content_type = response.headers.get("Content-Type", "")
        if not content_type.startswith("image/jpeg"):
            raise InvalidContentTypeError(
                f"Expected image/jpeg for image {image_id}, got {content_type!r}"
            )
        return response.content

    async def get_analyzer(self, analyzer_id: str) -> dict[str, Any]:
        response = await self._submitter.request("GET", self.analyzer_url(analyzer_id))
        return response.json()

    async def iter_analyzer_pages(self) -> AsyncIterator[AnalyzerPage]:
        """Yield analyzer listing pages, following ``nextLink``."""
        url: str | None = self._url("analyzers")
        seen: set[str] = set()
        while url:
            seen.add(url)
            response = await self._submitter.request("GET", url)
            page = AnalyzerPage.from_json(response.json())
            yield page
            url = page.next_link
            if url in seen:
                log.warning("Analyzer listing returned a repeated nextLink; stopping")
                break

    async def list_analyzers(self) -> list[dict[str, Any]]:
        analyzers: list[dict[str, Any]] = []
        async for page in self.iter_analyzer_pages():
            analyzers.extend(page.value)
        log.info("Found %d analyzers", len(analyzers))
        return analyzers

    async def delete_analyzer(self, analyzer_id: str) -> None:
        await self._delete(self.analyzer_url(analyzer_id), f"Analyzer {analyzer_id}")

    # --- Classifiers ---

    async def begin_create_classifier(
        self, classifier_id: str, schema: JSONObject
    ) -> SubmittedOperation:
        if not schema:
            raise ValueError("Classifier schema must be provided.")
        envelope = build_request(schema)
        operation = await self._submitter.submit(
            "PUT", self.classifier_url(classifier_id), json=envelope.to_json()
        )
        log.info("Classifier %s create request accepted.", classifier_id)
        return operation

    async def create_classifier(
        self,
        classifier_id: str,
        schema: JSONObject,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        operation = await self.begin_create_classifier(classifier_id, schema)
        return await self.poll_result(operation, timeout=timeout, cancel_event=cancel_event)

    async def begin_classify(
        self, classifier_id: str, file_location: str | Path
    ) -> SubmittedOperation:
        operation = await self._submitter.submit(
            "POST", self.classify_url(classifier_id), **_input_payload(file_location)
        )
        log.info("Classifying %s with classifier: %s", file_location, classifier_id)
        return operation

    async def classify(
        self,
        classifier_id: str,
        file_location: str | Path,
        *,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        operation = await self.begin_classify(classifier_id, file_location)
        return await self.poll_result(operation, timeout=timeout, cancel_event=cancel_event)

    async def delete_classifier(self, classifier_id: str) -> None:
        await self._delete(self.classifier_url(classifier_id), f"Classifier {classifier_id}")

    async def _delete(self, url: str, label: str) -> None:
        response = await self._submitter.request("DELETE", url, allow_status=(404,))
        if response.status_code == 404:
            log.warning("%s not found; nothing to delete.", label)
        else:
            log.info("%s deleted.", label)

    # --- Staging ---

    async def stage_training_data(
        self, local_dir: str | Path, prefix: str, gateway: ObjectStoreGateway
    ) -> list[str]:
        return await upload_training_data(local_dir, prefix, gateway)

    async def stage_reference_documents(
        self,
        local_dir: str | Path,
        prefix: str,
        gateway: ObjectStoreGateway,
        *,
        skip_analyze: bool = False,
    ) -> list[dict[str, str]]:
        """Upload reference documents, analyzing them with the prebuilt analyzer."""
        return await upload_reference_documents(
            local_dir,
            prefix,
            gateway,
            analyze=self.get_prebuilt_document_analyze_result,
            skip_analyze=skip_analyze,
        )


def _require_id(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value


def _input_payload(file_location: str | Path) -> dict[str, Any]:
    """Pick the analyze/classify body for a file, folder or URL."""
    location = str(file_location)
    if location.startswith(("https://", "http://")):
        return {"json": url_body(location)}
    path = Path(location)
    if path.is_dir():
        return {"json": batch_inputs_body(path)}
    if path.is_file():
        return {"content": path.read_bytes()}
    raise ValueError("File location must be a valid path or URL.")
