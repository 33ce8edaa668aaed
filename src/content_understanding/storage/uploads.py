"""Bulk upload helpers that stage training and reference data.

These run before ``validate_staged_resources``. Every local precondition
(companion files present, supported types only) is checked before the first
upload so a bad folder never leaves a half-staged prefix behind.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any, TypeAlias

from content_understanding.constants import OCR_RESULT_FILE_SUFFIX

from .gateway import ObjectStoreGateway
from .layout import (
    blob_key,
    is_companion_name,
    is_supported_document,
    label_key,
    normalize_prefix,
    ocr_result_key,
    primary_name_of,
    reference_list_key,
)
from .staging import list_local_files

log = logging.getLogger(__name__)

AnalyzeFn: TypeAlias = Callable[[Path], Awaitable[dict[str, Any]]]


@dataclass(frozen=True, slots=True)
class ReferenceDocItem:
    """One reference document and the location of its analysis result."""

    name: str
    file_path: Path
    result_name: str
    result_path: Path | None = None

    def manifest_record(self) -> dict[str, str]:
        return {"file": self.name, "resultFile": self.result_name}


def _is_training_document(name: str) -> bool:
    # Files uploaded through the portal are renamed to extension-less ids
    return Path(name).suffix == "" or is_supported_document(name)


async def upload_training_data(
    local_dir: str | Path,
    prefix: str,
    gateway: ObjectStoreGateway,
) -> list[str]:
    """Upload each training document with its label and OCR result files.

    Returns:
        The uploaded primary keys.

    Raises:
        FileNotFoundError: If a document lacks its ``.labels.json`` or
            ``.result.json`` companion. Nothing is uploaded in that case.
    """
    root = Path(local_dir)
    prefix = normalize_prefix(prefix)
    names = [
        n
        for n in list_local_files(root)
        if not is_companion_name(n) and _is_training_document(n)
    ]

    for name in names:
        for companion in (label_key(name), ocr_result_key(name)):
            if not (root / companion).is_file():
                raise FileNotFoundError(
                    f"Label file '{label_key(name)}' or OCR result file "
                    f"'{ocr_result_key(name)}' does not exist in '{root}'. "
                    f"Please ensure both files exist for '{name}'."
                )

    uploaded: list[str] = []
    for name in names:
        for relative in (name, label_key(name), ocr_result_key(name)):
            await gateway.upload_file(blob_key(prefix, relative), root / relative)
        uploaded.append(blob_key(prefix, name))
        log.info("Uploaded training data for %s", name)
    return uploaded


def collect_reference_docs(local_dir: str | Path, *, skip_analyze: bool) -> list[ReferenceDocItem]:
    """Plan the reference documents in ``local_dir``.

    Without ``skip_analyze`` every file must be a supported document. With it,
    each document must ship its ``.result.json`` and every result file must
    belong to a supported document in the same folder.
    """
    root = Path(local_dir)
    names = list_local_files(root)
    name_set = set(names)
    items: list[ReferenceDocItem] = []

    for name in names:
        if is_supported_document(name):
            result_name = ocr_result_key(name)
            result_path = None
            if skip_analyze:
                result_path = root / result_name
                if not result_path.is_file():
                    raise FileNotFoundError(
                        f"Result file '{result_name}' does not exist in '{root}'. "
                        "Please run analyze first or remove this file from the folder."
                    )
            items.append(
                ReferenceDocItem(
                    name=name,
                    file_path=root / name,
                    result_name=result_name,
                    result_path=result_path,
                )
            )
        elif skip_analyze and name.endswith(OCR_RESULT_FILE_SUFFIX):
            original = primary_name_of(name)
            if original not in name_set:
                raise ValueError(
                    f"Result file '{name}' is not corresponding to an original file, "
                    "please remove it."
                )
            if not is_supported_document(original):
                raise ValueError(
                    f"The '{original}' is not a supported document type, "
                    f"please remove the result file '{name}' and '{original}'."
                )
        else:
            raise ValueError(
                f"File '{name}' is not a supported document type, "
                "please remove it or convert it to a supported type."
            )
    return items


async def upload_reference_documents(
    local_dir: str | Path,
    prefix: str,
    gateway: ObjectStoreGateway,
    *,
    analyze: AnalyzeFn | None = None,
    skip_analyze: bool = False,
) -> list[dict[str, str]]:
    """Stage pro-mode reference documents and their ``sources.jsonl`` manifest.

    Args:
        local_dir: Folder with reference documents.
        prefix: Target prefix inside the container.
        gateway: Object store to upload to.
        analyze: Coroutine producing the analysis result for one document.
            Required unless ``skip_analyze`` is set.
        skip_analyze: Upload existing local ``.result.json`` files instead of
            analyzing.

    Returns:
        The manifest records written to ``sources.jsonl``.
    """
    if not skip_analyze and analyze is None:
        raise ValueError("An analyze callable is required unless skip_analyze=True")

    prefix = normalize_prefix(prefix)
    items = collect_reference_docs(local_dir, skip_analyze=skip_analyze)
    records: list[dict[str, str]] = []

    for item in items:
        result_key = blob_key(prefix, item.result_name)
        if item.result_path is not None:
            log.info("Using existing result file for '%s'", item.name)
            await gateway.upload_file(result_key, item.result_path)
        else:
            log.info("Analyzing reference document '%s'", item.name)
            try:
                result = await analyze(item.file_path)  # type: ignore[misc]
            except Exception:
                log.error(
                    "Error getting analyze result of '%s'. Consider retrying or "
                    "removing this file.",
                    item.name,
                )
                raise
            await gateway.upload_bytes(
                result_key, json.dumps(result, indent=4).encode("utf-8")
            )
        await gateway.upload_file(blob_key(prefix, item.name), item.file_path)
        records.append(item.manifest_record())

    manifest = "\n".join(json.dumps(r) for r in records)
    await gateway.upload_bytes(reference_list_key(prefix), manifest.encode("utf-8"))
    log.info("Uploaded %s with %d reference documents", reference_list_key(prefix), len(records))
    return records
