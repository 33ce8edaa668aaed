"""Authenticated request primitive and operation submission.

``OperationSubmitter.submit`` issues the initiating call of a long-running
operation and surfaces its ``Operation-Location`` handle. It never retries:
transient 5xx/429 handling belongs in a layer wrapped around this one.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import TYPE_CHECKING, Any

import httpx

from content_understanding.auth import Credentials, client_headers
from content_understanding.constants import (
    BINARY_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    OPERATION_LOCATION_HEADER,
)
from content_understanding.core.types import ErrorDetail, SubmittedOperation
from content_understanding.exceptions import (
    ServiceResponseError,
    SubmissionError,
    TransportError,
)
from content_understanding.telemetry import TelemetryContext

from .result_decoder import decode_error_body

if TYPE_CHECKING:
    from content_understanding.config import FrozenConfig
    from content_understanding.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

T_SUBMIT = "submit"


class OperationSubmitter:
    """Sends authenticated requests to the service.

    The HTTP client and the credentials are owned by the caller and may be
    shared across concurrent flows.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        config: FrozenConfig,
        credentials: Credentials,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._http = http_client
        self._config = config
        self._credentials = credentials
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()

    async def _headers(self, content_type: str | None) -> dict[str, str]:
        headers = await self._credentials.auth_headers()
        headers.update(client_headers(self._config.user_agent))
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        content: bytes | None = None,
        content_type: str | None = None,
        error_cls: type[ServiceResponseError] = ServiceResponseError,
        allow_status: Iterable[int] = (),
    ) -> httpx.Response:
        """Send one authenticated request and check its status.

        Raises:
            AuthError: If the token provider fails.
            TransportError: On network-level failures.
            ServiceResponseError: (or ``error_cls``) on a non-2xx status that
                is not listed in ``allow_status``.
        """
        if json is not None and content is not None:
            raise ValueError("Provide either json or content, not both")
        if content_type is None:
            if json is not None:
                content_type = JSON_CONTENT_TYPE
            elif content is not None:
                content_type = BINARY_CONTENT_TYPE

        headers = await self._headers(content_type)
        try:
            response = await self._http.request(
                method, url, json=json, content=content, headers=headers
            )
        except httpx.TransportError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.is_success or response.status_code in set(allow_status):
            return response

        detail: ErrorDetail = decode_error_body(response.text)
        log.error(
            "%s %s returned HTTP %d: %s",
            method,
            url,
            response.status_code,
            detail.render(),
        )
        raise error_cls(response.status_code, detail, url=url)

    async def submit(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        content: bytes | None = None,
        content_type: str | None = None,
        expect_operation: bool = True,
    ) -> SubmittedOperation:
        """Issue the initiating call of an operation.

        Returns:
            SubmittedOperation with the ``Operation-Location`` handle (``None``
            when ``expect_operation`` is False and the header is absent).

        Raises:
            SubmissionError: On a non-2xx status, or when an asynchronous
                action is accepted without an operation handle.
        """
        with self._telemetry(T_SUBMIT, method=method):
            response = await self.request(
                method,
                url,
                json=json,
                content=content,
                content_type=content_type,
                error_cls=SubmissionError,
            )

        handle = response.headers.get(OPERATION_LOCATION_HEADER) or None
        if handle is None and expect_operation:
            raise SubmissionError(
                response.status_code,
                ErrorDetail(
                    code="MissingOperationLocation",
                    message=f"{OPERATION_LOCATION_HEADER} header not found in response",
                ),
                url=url,
            )
        log.info("%s %s accepted (HTTP %d)", method, url, response.status_code)
        return SubmittedOperation(handle=handle, response=response)
