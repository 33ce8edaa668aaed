"""Scenario-first convenience helpers for common operations.

Each helper resolves configuration, opens a client for the duration of one
call and closes it again. When no subscription key is configured the helpers
authenticate with ``DefaultAzureCredential``.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from content_understanding.auth import AzureTokenProvider
from content_understanding.client import ContentUnderstandingClient
from content_understanding.config import FrozenConfig, resolve_config
from content_understanding.core.types import StagingMode
from content_understanding.pipeline.request_builder import load_template
from content_understanding.storage.gateway import BlobContainerGateway

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from content_understanding.core.types import KnowledgeSource, TrainingDataSource
    from content_understanding.storage.gateway import ObjectStoreGateway


@asynccontextmanager
async def open_client(
    cfg: FrozenConfig | None = None,
) -> AsyncIterator[ContentUnderstandingClient]:
    """Yield a client for ``cfg`` (or the resolved configuration).

    Example:
        ```python
        async with open_client() as client:
            analyzers = await client.list_analyzers()
        ```
    """
    final_cfg = cfg or resolve_config()
    provider = None if final_cfg.subscription_key else AzureTokenProvider()
    try:
        async with ContentUnderstandingClient(final_cfg, token_provider=provider) as client:
            yield client
    finally:
        if provider is not None:
            await provider.close()


async def create_analyzer(
    analyzer_id: str,
    template: dict[str, Any] | str | Path,
    *,
    training_data: TrainingDataSource | None = None,
    knowledge_source: KnowledgeSource | None = None,
    cfg: FrozenConfig | None = None,
    timeout: float | None = None,
    cancel_event: asyncio.Event | None = None,
) -> dict[str, Any]:
    """Create an analyzer from a template dict or template file and wait.

    Args:
        analyzer_id: Identifier of the analyzer to create or replace.
        template: Analyzer definition, or a path to a JSON template.
        training_data: Optional labeled training data pointer.
        knowledge_source: Optional pro mode reference pointer.
        cfg: Optional frozen configuration. If omitted, `resolve_config()` is used.
        timeout: Polling budget in seconds.
        cancel_event: Set to stop polling early.

    Returns:
        The Succeeded operation envelope.
    """
    body = template if isinstance(template, dict) else load_template(template)
    async with open_client(cfg) as client:
        return await client.create_analyzer(
            analyzer_id,
            body,
            training_data=training_data,
            knowledge_source=knowledge_source,
            timeout=timeout,
            cancel_event=cancel_event,
        )


async def analyze_file(
    analyzer_id: str,
    file_location: str | Path,
    *,
    cfg: FrozenConfig | None = None,
    long_running: bool = False,
    timeout: float | None = None,
    cancel_event: asyncio.Event | None = None,
) -> dict[str, Any]:
    """Analyze a file, folder or URL with an existing analyzer and wait.

    See Also:
        For several calls against one connection, use `open_client()`.
    """
    async with open_client(cfg) as client:
        return await client.analyze(
            analyzer_id,
            file_location,
            long_running=long_running,
            timeout=timeout,
            cancel_event=cancel_event,
        )


async def create_analyzer_from_staged_data(
    analyzer_id: str,
    template: dict[str, Any] | str | Path,
    *,
    local_dir: str | Path,
    mode: StagingMode = StagingMode.STANDARD_TRAINING,
    container_url: str | None = None,
    prefix: str | None = None,
    gateway: ObjectStoreGateway | None = None,
    cfg: FrozenConfig | None = None,
    timeout: float | None = None,
    cancel_event: asyncio.Event | None = None,
) -> dict[str, Any]:
    """Check staged blobs under a container prefix, then create the analyzer.

    ``container_url`` and ``prefix`` default to the configured
    ``training_data_*`` settings in standard mode and ``reference_docs_*``
    in pro modes. Without ``gateway`` the container is opened from its SAS URL.

    Example:
        ```python
        # AZURE_CONTENT_UNDERSTANDING_TRAINING_DATA_SAS_URL and
        # AZURE_CONTENT_UNDERSTANDING_TRAINING_DATA_PATH are set
        await create_analyzer_from_staged_data(
            "trained-invoices", "templates/invoice.json", local_dir="data/labeled"
        )
        ```
    """
    body = template if isinstance(template, dict) else load_template(template)
    async with open_client(cfg) as client:
        container_url, prefix = client.staged_data_location(
            mode, container_url=container_url, prefix=prefix
        )
        async with AsyncExitStack() as stack:
            if gateway is None:
                gateway = await stack.enter_async_context(
                    BlobContainerGateway.from_container_url(container_url)
                )
            return await client.create_analyzer_from_staged_data(
                analyzer_id,
                body,
                local_dir=local_dir,
                gateway=gateway,
                mode=mode,
                container_url=container_url,
                prefix=prefix,
                timeout=timeout,
                cancel_event=cancel_event,
            )
