"""Tests for identity providers."""

from __future__ import annotations

import asyncio

import pytest

from pantry_sync.errors import AuthError
from pantry_sync.sync.auth import CachedIdentityProvider, StaticIdentityProvider


class TestStaticIdentityProvider:
    async def test_returns_token(self) -> None:
        assert await StaticIdentityProvider("abc").get_token() == "abc"

    def test_rejects_empty(self) -> None:
        with pytest.raises(ValueError):
            StaticIdentityProvider("")


class TestCachedIdentityProvider:
    """Caches the first token, shares one in-flight fetch, clears on invalidate."""

    async def test_caches_after_first_success(self) -> None:
        calls = 0

        async def fetch() -> str:
            nonlocal calls
            calls += 1
            return f"token-{calls}"

        provider = CachedIdentityProvider(fetch)

        assert await provider.get_token() == "token-1"
        assert await provider.get_token() == "token-1"
        assert calls == 1
        assert provider.cached_token == "token-1"

    async def test_concurrent_callers_share_fetch(self) -> None:
        calls = 0
        release = asyncio.Event()

        async def fetch() -> str:
            nonlocal calls
            calls += 1
            await release.wait()
            return "shared"

        provider = CachedIdentityProvider(fetch)
        waiters = [asyncio.create_task(provider.get_token()) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(*waiters) == ["shared"] * 5
        assert calls == 1

    async def test_invalidate_forces_refetch(self) -> None:
        tokens = iter(["first", "second"])

        async def fetch() -> str:
            return next(tokens)

        provider = CachedIdentityProvider(fetch)
        assert await provider.get_token() == "first"

        provider.invalidate()
        assert provider.cached_token is None
        assert await provider.get_token() == "second"

    async def test_fetch_error_becomes_auth_error(self) -> None:
        async def fetch() -> str:
            raise ConnectionError("identity service down")

        provider = CachedIdentityProvider(fetch)
        with pytest.raises(AuthError, match="identity service down"):
            await provider.get_token()
        assert provider.cached_token is None

    async def test_empty_token_rejected(self) -> None:
        async def fetch() -> str | None:
            return None

        with pytest.raises(AuthError, match="no token"):
            await CachedIdentityProvider(fetch).get_token()

    async def test_failure_not_cached(self) -> None:
        attempts = 0

        async def fetch() -> str:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise AuthError("expired")
            return "fresh"

        provider = CachedIdentityProvider(fetch)
        with pytest.raises(AuthError):
            await provider.get_token()
        assert await provider.get_token() == "fresh"
