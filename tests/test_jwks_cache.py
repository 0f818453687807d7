"""Tests for JWKSCache - TTL, single-flight refresh and stale-while-error."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from storefront.auth.jwks_cache import JWKSCache
from storefront.auth.tokens import TokenVerifier
from storefront.core.errors import JWKSFetchError

JWKS_URL = "http://users.test/.well-known/jwks.json"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeIdentityProvider:
    """Mock transport standing in for the users service."""

    def __init__(self, keyset: dict):
        self.keyset = keyset
        self.calls = 0
        self.failing = False
        self.delay = 0.0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failing:
            return httpx.Response(503, json={"error": "unavailable"})
        return httpx.Response(200, json=self.keyset)


@pytest.fixture
def idp(signing_key) -> FakeIdentityProvider:
    return FakeIdentityProvider(signing_key.jwks())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def cache(idp, clock):
    client = httpx.AsyncClient(transport=httpx.MockTransport(idp))
    cache = JWKSCache(JWKS_URL, ttl=3600, error_backoff=30, client=client, clock=clock)
    yield cache
    await client.aclose()


async def test_served_from_cache_within_ttl(cache, idp, clock, signing_key):
    first = await cache.get()
    clock.advance(3599)
    second = await cache.get()

    assert first == signing_key.jwks()
    assert second is first
    assert idp.calls == 1


async def test_refetched_after_ttl(cache, idp, clock):
    await cache.get()
    clock.advance(3600)
    await cache.get()
    assert idp.calls == 2


async def test_single_flight(cache, idp):
    idp.delay = 0.05
    results = await asyncio.gather(*(cache.get() for _ in range(10)))

    assert idp.calls == 1
    assert all(r is results[0] for r in results)


async def test_single_flight_after_ttl_expiry(cache, idp, clock):
    warm = await cache.get()
    clock.advance(3601)
    idp.delay = 0.05

    results = await asyncio.gather(*(cache.get() for _ in range(10)))

    assert idp.calls == 2
    assert all(r is results[0] for r in results)
    assert results[0] is not warm


async def test_invalidate_during_refresh_forces_another_fetch(cache, idp):
    idp.delay = 0.05
    in_flight = asyncio.create_task(cache.get())
    await asyncio.sleep(0.01)
    cache.invalidate()
    await in_flight
    assert idp.calls == 1

    idp.delay = 0
    await cache.get()
    await cache.get()
    assert idp.calls == 2


async def test_stale_keyset_served_when_refresh_fails(cache, idp, clock, signing_key):
    await cache.get()
    idp.failing = True
    clock.advance(4000)

    assert await cache.get() == signing_key.jwks()
    assert idp.calls == 2

    # Within the backoff window the failing endpoint is not hammered
    clock.advance(10)
    await cache.get()
    assert idp.calls == 2

    clock.advance(30)
    await cache.get()
    assert idp.calls == 3


async def test_recovers_after_failure(cache, idp, clock):
    await cache.get()
    idp.failing = True
    clock.advance(4000)
    await cache.get()

    idp.failing = False
    clock.advance(30)
    await cache.get()
    clock.advance(100)
    await cache.get()
    assert idp.calls == 3


async def test_error_without_cached_keyset(cache, idp):
    idp.failing = True
    with pytest.raises(JWKSFetchError) as exc_info:
        await cache.get()
    assert exc_info.value.url == JWKS_URL


async def test_invalidate_forces_fetch(cache, idp):
    await cache.get()
    cache.invalidate()
    await cache.get()
    assert idp.calls == 2


async def test_invalidate_keeps_stale_fallback(cache, idp, signing_key):
    await cache.get()
    cache.invalidate()
    idp.failing = True
    assert await cache.get() == signing_key.jwks()


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"no": "keys"}),
        httpx.Response(404),
    ],
)
async def test_bad_responses_raise(response):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))
    cache = JWKSCache(JWKS_URL, client=client)
    with pytest.raises(JWKSFetchError):
        await cache.get()
    await client.aclose()


async def test_connection_error_raises():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
    cache = JWKSCache(JWKS_URL, client=client)
    with pytest.raises(JWKSFetchError):
        await cache.get()
    await client.aclose()


async def test_verifier_over_cache(cache, issuer, idp):
    verifier = TokenVerifier(cache)
    for _ in range(3):
        identity = await verifier.verify(issuer.issue("user:1", "user1", ["a"]))
        assert identity.subject == "user:1"
    assert idp.calls == 1


async def test_verifier_propagates_fetch_error(cache, issuer, idp):
    idp.failing = True
    with pytest.raises(JWKSFetchError):
        await TokenVerifier(cache).verify(issuer.issue("user:1", "user1"))
