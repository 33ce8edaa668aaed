"""Naming conventions for staged blobs.

Pure functions only. A logical input file ``<name>`` is accompanied by
``<name>.labels.json`` (training labels) and ``<name>.result.json`` (OCR or
prebuilt analysis result); pro mode adds one ``sources.jsonl`` manifest per
prefix.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from content_understanding.constants import (
    KNOWLEDGE_SOURCE_LIST_FILE_NAME,
    LABEL_FILE_SUFFIX,
    OCR_RESULT_FILE_SUFFIX,
    SUPPORTED_DOCUMENT_TYPES,
)
from content_understanding.core.types import StagedResourceSet, StagingMode

REFERENCE_LIST_KEY = KNOWLEDGE_SOURCE_LIST_FILE_NAME
COMPANION_SUFFIXES = (LABEL_FILE_SUFFIX, OCR_RESULT_FILE_SUFFIX)


def _require_name(name: str, what: str = "file name") -> None:
    if not name or not name.strip():
        raise ValueError(f"{what} must be a non-empty string")


def label_key(name: str) -> str:
    _require_name(name)
    return f"{name}{LABEL_FILE_SUFFIX}"


def ocr_result_key(name: str) -> str:
    _require_name(name)
    return f"{name}{OCR_RESULT_FILE_SUFFIX}"


def normalize_prefix(prefix: str) -> str:
    """Return ``prefix`` with exactly one trailing slash."""
    _require_name(prefix, "prefix")
    return prefix.rstrip("/") + "/"


def blob_key(prefix: str, relative_name: str) -> str:
    """Join a prefix and a relative (POSIX) name into an object key."""
    _require_name(relative_name)
    return normalize_prefix(prefix) + relative_name.lstrip("/")


def reference_list_key(prefix: str) -> str:
    return blob_key(prefix, REFERENCE_LIST_KEY)


def is_companion_name(name: str) -> bool:
    return name.endswith(COMPANION_SUFFIXES)


def primary_name_of(companion: str) -> str:
    """Strip a companion suffix, returning the primary file name."""
    for suffix in COMPANION_SUFFIXES:
        if companion.endswith(suffix):
            return companion[: -len(suffix)]
    return companion


def is_supported_document(name: str) -> bool:
    """Check a file name's extension against the supported document types."""
    return PurePosixPath(name).suffix.lower() in SUPPORTED_DOCUMENT_TYPES


def staged_resource_set(
    prefix: str, relative_name: str, mode: StagingMode
) -> StagedResourceSet:
    """Derive the object keys one local file needs under ``prefix``.

    Standard training needs labels and OCR results, pro-mode reference
    ingestion needs OCR results, and the skip-analyze variant only needs the
    primary file.
    """
    primary = blob_key(prefix, relative_name)
    match mode:
        case StagingMode.STANDARD_TRAINING:
            return StagedResourceSet(
                primary=primary,
                label=label_key(primary),
                ocr_result=ocr_result_key(primary),
            )
        case StagingMode.PRO_MODE_REFERENCE:
            return StagedResourceSet(primary=primary, ocr_result=ocr_result_key(primary))
        case StagingMode.PRO_MODE_SKIP_ANALYZE:
            return StagedResourceSet(primary=primary)
    raise ValueError(f"Unknown staging mode: {mode!r}")
