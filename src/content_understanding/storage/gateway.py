"""Object store gateway contract and implementations.

The client core only needs three things from blob storage: upload bytes,
upload a local file, and list keys under a prefix. ``BlobContainerGateway``
backs that contract with the Azure Storage async SDK; ``InMemoryGateway`` is
a dict-backed stand-in for tests and dry runs.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from pathlib import Path
from types import TracebackType
from typing import Protocol, Self, runtime_checkable

from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential
from azure.storage.blob import (
    BlobServiceClient,
    ContainerSasPermissions,
    generate_container_sas,
)
from azure.storage.blob.aio import ContainerClient

from content_understanding.constants import SAS_EXPIRY_HOURS
from content_understanding.exceptions import StorageError

log = logging.getLogger(__name__)


@runtime_checkable
class ObjectStoreGateway(Protocol):
    """Minimal async object store contract used by staging and uploads."""

    async def upload_bytes(self, key: str, data: bytes) -> None: ...  # noqa: D102
    async def upload_file(self, key: str, path: Path) -> None: ...  # noqa: D102
    async def list_keys(self, prefix: str) -> set[str]: ...  # noqa: D102


class BlobContainerGateway:
    """Gateway over a single blob container addressed by a SAS URL.

    Use as an async context manager so the underlying container client is
    closed:

        async with BlobContainerGateway.from_container_url(sas_url) as gw:
            await gw.upload_file("train/a.pdf", Path("a.pdf"))
    """

    def __init__(self, container_client: ContainerClient) -> None:
        self._container = container_client

    @classmethod
    def from_container_url(cls, container_sas_url: str) -> BlobContainerGateway:
        return cls(ContainerClient.from_container_url(container_sas_url))

    async def __aenter__(self) -> Self:
        await self._container.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self._container.__aexit__(exc_type, exc_value, exc_tb)

    async def upload_bytes(self, key: str, data: bytes) -> None:
        try:
            await self._container.upload_blob(name=key, data=data, overwrite=True)
        except AzureError as e:
            raise StorageError(f"Failed to upload content to blob '{key}': {e}") from e
        log.info("Uploaded %d bytes to %s", len(data), key)

    async def upload_file(self, key: str, path: Path) -> None:
        try:
            with Path(path).open("rb") as data:
                await self._container.upload_blob(name=key, data=data, overwrite=True)
        except AzureError as e:
            raise StorageError(
                f"Failed to upload file '{path}' to blob '{key}': {e}"
            ) from e
        log.info("Uploaded file %s to %s", path, key)

    async def list_keys(self, prefix: str) -> set[str]:
        try:
            return {
                blob.name
                async for blob in self._container.list_blobs(name_starts_with=prefix)
            }
        except AzureError as e:
            raise StorageError(f"Failed to list blobs under '{prefix}': {e}") from e


class InMemoryGateway:
    """Dict-backed gateway. Last write to a key wins."""

    def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
        self.blobs: dict[str, bytes] = dict(blobs or {})
        self.list_calls = 0

    async def upload_bytes(self, key: str, data: bytes) -> None:
        self.blobs[key] = bytes(data)

    async def upload_file(self, key: str, path: Path) -> None:
        self.blobs[key] = Path(path).read_bytes()

    async def list_keys(self, prefix: str) -> set[str]:
        self.list_calls += 1
        return {k for k in self.blobs if k.startswith(prefix)}


def generate_container_sas_url(
    account_name: str,
    container_name: str,
    *,
    permissions: ContainerSasPermissions | None = None,
    expiry_hours: int | None = None,
) -> str:
    """Generate a time-limited container SAS URL using a user delegation key.

    Args:
        account_name: Storage account name.
        container_name: Container name.
        permissions: Defaults to read and list.
        expiry_hours: Defaults to ``SAS_EXPIRY_HOURS``.

    Returns:
        ``https://<account>.blob.core.windows.net/<container>?<sas>``
    """
    if permissions is None:
        permissions = ContainerSasPermissions(read=True, list=True)
    account_url = f"https://{account_name}.blob.core.windows.net"
    start_time = datetime.now(timezone.utc)
    expiry_time = start_time + timedelta(hours=expiry_hours or SAS_EXPIRY_HOURS)
    try:
        with (
            DefaultAzureCredential() as credential,
            BlobServiceClient(account_url=account_url, credential=credential) as service,
        ):
            delegation_key = service.get_user_delegation_key(start_time, expiry_time)
    except AzureError as e:
        raise StorageError(
            f"Failed to obtain user delegation key for account '{account_name}': {e}"
        ) from e

    sas_token = generate_container_sas(
        account_name=account_name,
        container_name=container_name,
        user_delegation_key=delegation_key,
        permission=permissions,
        expiry=expiry_time,
        start=start_time,
    )
    return f"{account_url}/{container_name}?{sas_token}"
