"""Decode service error bodies and terminal envelopes.

Failures are never reported as a bare HTTP status: when the body is not the
expected ``{"error": {...}}`` shape, a prefix of the raw text is kept instead.
"""

from __future__ import annotations

import json
from typing import Any

from content_understanding.constants import ERROR_BODY_PREVIEW
from content_understanding.core.types import ErrorDetail


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _preview(text: str) -> str | None:
    return text[:ERROR_BODY_PREVIEW] if text else None


def error_from_object(error: dict[str, Any], *, raw: str | None = None) -> ErrorDetail:
    """Build an ErrorDetail from a service ``error`` object."""
    inner = error.get("innererror") or error.get("innerError") or {}
    if not isinstance(inner, dict):
        inner = {}
    details = error.get("details") or ()
    return ErrorDetail(
        code=_str_or_none(error.get("code")),
        message=_str_or_none(error.get("message")),
        inner_code=_str_or_none(inner.get("code")),
        inner_message=_str_or_none(inner.get("message")),
        details=tuple(details) if isinstance(details, list) else (),
        raw=raw,
    )


def decode_error_body(text: str) -> ErrorDetail:
    """Decode an HTTP error body, degrading to a raw-text preview."""
    try:
        data = json.loads(text) if text else None
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return error_from_object(data["error"], raw=_preview(text))
    return ErrorDetail(raw=_preview(text))


def decode_failure(envelope: dict[str, Any]) -> ErrorDetail:
    """Decode the error carried by a Failed terminal envelope."""
    error = envelope.get("error")
    if isinstance(error, dict):
        return error_from_object(error)
    return ErrorDetail(raw=_preview(json.dumps(envelope, default=str)))


def decode_success(envelope: dict[str, Any]) -> dict[str, Any]:
    """Return the Succeeded envelope unmodified."""
    return envelope
