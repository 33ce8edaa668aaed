"""Credential seam for outbound requests.

A static subscription key takes precedence. Otherwise a token provider is
called per request; providers must be safe for concurrent use, which
``AzureTokenProvider`` guarantees by caching the token and serializing
refreshes behind a lock.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import inspect
import logging
import time
from typing import TypeAlias

from azure.core.exceptions import ClientAuthenticationError
from azure.identity.aio import DefaultAzureCredential

from content_understanding.config import FrozenConfig
from content_understanding.constants import (
    COGNITIVE_SERVICES_SCOPE,
    SUBSCRIPTION_KEY_HEADER,
    TOKEN_REFRESH_MARGIN,
    USER_AGENT_HEADER,
)
from content_understanding.exceptions import AuthError, ConfigurationError

log = logging.getLogger(__name__)

TokenProvider: TypeAlias = Callable[[], str | Awaitable[str]]


@dataclass(frozen=True, slots=True)
class Credentials:
    """Either a subscription key or a token provider."""

    subscription_key: str | None = None
    token_provider: TokenProvider | None = None

    def __post_init__(self) -> None:
        if not self.subscription_key and self.token_provider is None:
            raise ConfigurationError(
                "Either a subscription key or a token provider must be provided."
            )

    @classmethod
    def from_config(
        cls, config: FrozenConfig, token_provider: TokenProvider | None = None
    ) -> Credentials:
        return cls(subscription_key=config.subscription_key, token_provider=token_provider)

    async def auth_headers(self) -> dict[str, str]:
        """Return the authorization header for one request."""
        if self.subscription_key:
            return {SUBSCRIPTION_KEY_HEADER: self.subscription_key}
        try:
            token = self.token_provider()  # type: ignore[misc]
            if inspect.isawaitable(token):
                token = await token
        except AuthError:
            raise
        except Exception as e:
            raise AuthError(f"Failed to acquire access token: {e}") from e
        if not token:
            raise AuthError("Token provider returned an empty token")
        return {"Authorization": f"Bearer {token}"}


def client_headers(user_agent: str) -> dict[str, str]:
    return {USER_AGENT_HEADER: user_agent}


class AzureTokenProvider:
    """Bearer tokens from ``DefaultAzureCredential`` with cached refresh."""

    def __init__(
        self,
        credential: DefaultAzureCredential | None = None,
        *,
        scope: str = COGNITIVE_SERVICES_SCOPE,
        refresh_margin: float = TOKEN_REFRESH_MARGIN,
    ) -> None:
        self._credential = credential or DefaultAzureCredential()
        self._scope = scope
        self._refresh_margin = refresh_margin
        self._token: str | None = None
        self._expires_on: float = 0.0
        self._lock = asyncio.Lock()

    async def __call__(self) -> str:
        if self._is_fresh():
            return self._token  # type: ignore[return-value]
        async with self._lock:
            if self._is_fresh():
                return self._token  # type: ignore[return-value]
            try:
                access = await self._credential.get_token(self._scope)
            except ClientAuthenticationError as e:
                raise AuthError(f"Azure AD token acquisition failed: {e}") from e
            self._token = access.token
            self._expires_on = float(access.expires_on)
            log.debug("Refreshed access token for scope %s", self._scope)
            return self._token

    def _is_fresh(self) -> bool:
        return bool(self._token) and time.time() < self._expires_on - self._refresh_margin

    async def close(self) -> None:
        await self._credential.close()
