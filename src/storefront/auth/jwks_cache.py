"""
Time-bounded cache of the identity provider's published verification keys.

Cache-aside with single-flight refresh:
1. A keyset younger than ``ttl`` is served without a network call
2. Otherwise one caller (holding the lock) fetches; concurrent callers wait
   for it and then reuse its result
3. If the fetch fails the last good keyset is served (stale-while-error);
   with nothing cached the ``JWKSFetchError`` propagates
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from ..core.errors import JWKSFetchError

logger = logging.getLogger(__name__)


DEFAULT_TTL = 3600.0


@dataclass
class CacheEntry:
    """Last good keyset and when its fetch started (cache clock)."""
    keyset: dict[str, Any]
    fetched_at: float


class JWKSCache:
    """
    Usage:
        cache = JWKSCache("http://users:4001/.well-known/jwks.json")
        keyset = await cache.get()

        # Key rotation announced out of band
        cache.invalidate()
    """

    def __init__(
        self,
        url: str,
        *,
        ttl: float = DEFAULT_TTL,
        timeout: float = 5.0,
        error_backoff: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            url: JWKS endpoint of the identity provider
            ttl: Seconds a fetched keyset is served without refetching
            timeout: Upper bound for one fetch, in seconds
            error_backoff: After a failed refresh, seconds to keep serving the
                stale keyset before trying the network again
            client: Shared HTTP client (one is created lazily otherwise)
            clock: Monotonic time source
        """
        self.url = url
        self.ttl = ttl
        self.timeout = timeout
        self.error_backoff = error_backoff
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._failed_at: Optional[float] = None
        self._generation = 0
        self._lock = asyncio.Lock()
        self.fetch_count = 0

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this cache created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _is_fresh(self, entry: Optional[CacheEntry], now: float) -> bool:
        return entry is not None and now - entry.fetched_at < self.ttl

    def _in_backoff(self, now: float) -> bool:
        return self._failed_at is not None and now - self._failed_at < self.error_backoff

    async def get(self) -> dict[str, Any]:
        """Return the current keyset, fetching it when missing or expired."""
        entry = self._entry
        now = self._clock()
        if self._is_fresh(entry, now):
            return entry.keyset
        if entry is not None and self._in_backoff(now):
            return entry.keyset

        async with self._lock:
            # Another caller may have refreshed while we waited
            entry = self._entry
            now = self._clock()
            if self._is_fresh(entry, now):
                return entry.keyset
            if entry is not None and self._in_backoff(now):
                return entry.keyset

            generation = self._generation
            try:
                keyset = await self._fetch()
            except JWKSFetchError as e:
                self._failed_at = now
                if entry is not None:
                    logger.warning(f"{e}; serving keyset fetched {now - entry.fetched_at:.0f}s ago")
                    return entry.keyset
                logger.error(str(e))
                raise

            self._failed_at = None
            # An invalidate() during the fetch leaves the result already stale
            fetched_at = now if generation == self._generation else float("-inf")
            current = self._entry
            if current is None or current.fetched_at <= fetched_at or generation != self._generation:
                self._entry = CacheEntry(keyset=keyset, fetched_at=fetched_at)
            return keyset

    def invalidate(self) -> None:
        """
        Force the next ``get()`` to fetch.

        The old keyset is kept as the stale fallback.
        """
        self._generation += 1
        if self._entry is not None:
            self._entry = CacheEntry(keyset=self._entry.keyset, fetched_at=float("-inf"))
        self._failed_at = None

    async def _fetch(self) -> dict[str, Any]:
        client = await self._get_client()
        self.fetch_count += 1
        try:
            response = await client.get(self.url, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise JWKSFetchError(self.url, f"{type(e).__name__}: {e}") from e

        if response.status_code != 200:
            raise JWKSFetchError(self.url, f"status {response.status_code}")

        try:
            keyset = response.json()
        except ValueError as e:
            raise JWKSFetchError(self.url, f"invalid JSON: {e}") from e

        if not isinstance(keyset, dict) or not isinstance(keyset.get("keys"), list):
            raise JWKSFetchError(self.url, "response is not a JSON Web Key Set")

        logger.info(f"Fetched JWKS from {self.url} ({len(keyset['keys'])} key(s))")
        return keyset
