from __future__ import annotations

import pytest

from hotel_gateway.auth.call import call_with_auth
from hotel_gateway.auth.credentials import ProviderCredential
from hotel_gateway.auth.errors import ProviderUnauthorized, UpstreamRequestFailed
from hotel_gateway.auth.token_cache import ProviderTokenCache


class _CountingRefresh:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> ProviderCredential:
        self.calls += 1
        return ProviderCredential(provider="crm", token=f"tok-{self.calls}", expires_at=10_000.0)


def _cache() -> ProviderTokenCache:
    return ProviderTokenCache(skew_s=120, clock=lambda: 1_000.0)


@pytest.mark.asyncio
async def test_auth_failure_is_retried_once_with_a_fresh_token() -> None:
    refresh = _CountingRefresh()
    tokens: list[str] = []

    async def do_request(token: str) -> dict[str, str]:
        tokens.append(token)
        if len(tokens) == 1:
            raise ProviderUnauthorized("Token Expired")
        return {"token": token}

    result = await call_with_auth(_cache(), "crm", refresh, do_request)

    assert result == {"token": "tok-2"}
    assert tokens == ["tok-1", "tok-2"]
    assert refresh.calls == 2


@pytest.mark.asyncio
async def test_persistent_auth_failure_stops_after_second_attempt() -> None:
    refresh = _CountingRefresh()
    attempts = 0

    async def do_request(token: str) -> None:
        nonlocal attempts
        attempts += 1
        raise ProviderUnauthorized(f"token invalid ({token})")

    with pytest.raises(ProviderUnauthorized, match="tok-2"):
        await call_with_auth(_cache(), "crm", refresh, do_request)

    assert attempts == 2
    assert refresh.calls == 2


@pytest.mark.asyncio
async def test_other_failures_propagate_without_retry() -> None:
    refresh = _CountingRefresh()
    attempts = 0

    async def do_request(token: str) -> None:
        nonlocal attempts
        attempts += 1
        raise UpstreamRequestFailed("Validation failed", payload={"flag": "1", "message": "Validation failed"})

    with pytest.raises(UpstreamRequestFailed, match="Validation failed"):
        await call_with_auth(_cache(), "crm", refresh, do_request)

    assert attempts == 1
    assert refresh.calls == 1


@pytest.mark.asyncio
async def test_cached_token_is_reused_across_calls() -> None:
    refresh = _CountingRefresh()
    cache = _cache()

    async def do_request(token: str) -> str:
        return token

    assert await call_with_auth(cache, "crm", refresh, do_request) == "tok-1"
    assert await call_with_auth(cache, "crm", refresh, do_request) == "tok-1"
    assert refresh.calls == 1


@pytest.mark.asyncio
async def test_custom_classifier_is_honoured() -> None:
    refresh = _CountingRefresh()
    tokens: list[str] = []

    async def do_request(token: str) -> str:
        tokens.append(token)
        if len(tokens) == 1:
            raise KeyError("session")
        return token

    result = await call_with_auth(
        _cache(),
        "crm",
        refresh,
        do_request,
        is_unauthorized_error=lambda exc: isinstance(exc, KeyError),
    )

    assert result == "tok-2"
