"""Identity providers: turn the caller's identity into a bearer token."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from pantry_sync.errors import AuthError

logger = logging.getLogger(__name__)

TokenFetcher = Callable[[], Awaitable[str | None]]


class IdentityProvider(ABC):
    """Source of authorization tokens, injected into the engine and collaborators."""

    @abstractmethod
    async def get_token(self) -> str:
        """
        Return a bearer token for the current identity.

        Raises:
            AuthError: If no token can be obtained
        """
        ...

    def invalidate(self) -> None:  # noqa: B027
        """Forget any cached token. No-op by default."""


class StaticIdentityProvider(IdentityProvider):
    """Always returns the same token."""

    def __init__(self, token: str) -> None:
        if not token:
            raise ValueError("token must not be empty")
        self._token = token

    async def get_token(self) -> str:
        return self._token


class CachedIdentityProvider(IdentityProvider):
    """
    Wraps an async token fetcher and caches the first successful token.

    Concurrent callers share a single in-flight fetch. Call
    ``invalidate()`` on logout or after the remote rejects the token.

    Usage:
        provider = CachedIdentityProvider(firebase_user.get_id_token)
        token = await provider.get_token()
    """

    def __init__(self, fetch: TokenFetcher) -> None:
        self._fetch = fetch
        self._token: str | None = None
        self._lock = asyncio.Lock()

    @property
    def cached_token(self) -> str | None:
        return self._token

    async def get_token(self) -> str:
        if self._token is not None:
            return self._token

        async with self._lock:
            if self._token is not None:
                return self._token
            try:
                token = await self._fetch()
            except AuthError:
                raise
            except Exception as e:
                logger.warning("Token fetch failed: %s", e)
                raise AuthError(f"Failed to retrieve token: {e}") from e
            if not token:
                raise AuthError("Identity provider returned no token")
            self._token = token
            return token

    def invalidate(self) -> None:
        self._token = None
