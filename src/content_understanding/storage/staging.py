"""Local precondition check for storage-backed create operations.

A create-analyzer request that points at training data or reference documents
fails on the service side only after significant latency when a companion
blob is missing. ``validate_staged_resources`` lists the target prefix once
and compares it against the keys the local source folder implies, so the
failure surfaces locally and immediately.
"""

from __future__ import annotations

import logging
from pathlib import Path

from content_understanding.core.types import (
    StagedResourceSet,
    StagingMode,
    StagingReport,
)
from content_understanding.exceptions import MissingStagedResourceError, PreconditionError

from .gateway import ObjectStoreGateway
from .layout import (
    blob_key,
    is_companion_name,
    normalize_prefix,
    reference_list_key,
    staged_resource_set,
)

log = logging.getLogger(__name__)


def list_local_files(local_dir: str | Path) -> list[str]:
    """Return every file under ``local_dir`` as a sorted relative POSIX path."""
    root = Path(local_dir)
    if not root.is_dir():
        raise PreconditionError(f"Local source folder does not exist: {root}")
    return sorted(
        p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()
    )


def required_keys(
    local_files: list[str], prefix: str, mode: StagingMode
) -> tuple[frozenset[str], tuple[StagedResourceSet, ...]]:
    """Compute the object keys that must exist for ``local_files`` in ``mode``.

    Every local file must be present under the prefix. Each primary (non
    companion) file additionally needs the companions its mode requires, and
    pro modes need the ``sources.jsonl`` manifest once per prefix.
    """
    prefix = normalize_prefix(prefix)
    keys: set[str] = set()
    sets: list[StagedResourceSet] = []
    for name in local_files:
        keys.add(blob_key(prefix, name))
        if is_companion_name(name):
            continue
        resource_set = staged_resource_set(prefix, name, mode)
        sets.append(resource_set)
        keys.update(resource_set.keys())
    if mode.is_pro_mode:
        keys.add(reference_list_key(prefix))
    return frozenset(keys), tuple(sets)


async def validate_staged_resources(
    local_dir: str | Path,
    prefix: str,
    gateway: ObjectStoreGateway,
    mode: StagingMode,
) -> StagingReport:
    """Confirm that every blob required by ``mode`` exists under ``prefix``.

    Args:
        local_dir: Folder holding the source files that were staged.
        prefix: Target prefix inside the container.
        gateway: Object store used for a single listing call.
        mode: Staging mode of the dependent create operation.

    Returns:
        StagingReport describing the keys that were confirmed.

    Raises:
        PreconditionError: If the local folder is missing or empty.
        MissingStagedResourceError: If any required key is absent. ``missing``
            holds every absent key, sorted.
    """
    prefix = normalize_prefix(prefix)
    local_files = list_local_files(local_dir)
    if not local_files:
        raise PreconditionError(f"No source files found in {local_dir}")

    needed, resource_sets = required_keys(local_files, prefix, mode)
    present = await gateway.list_keys(prefix)
    missing = tuple(sorted(needed - present))
    if missing:
        log.error(
            "Staging check failed for %s: %d of %d required keys missing",
            prefix,
            len(missing),
            len(needed),
        )
        raise MissingStagedResourceError(missing, prefix)

    log.info("Staging validated: %d keys present under %s (%s)", len(needed), prefix, mode.value)
    return StagingReport(
        prefix=prefix,
        mode=mode,
        checked_keys=needed,
        resource_sets=resource_sets,
    )
