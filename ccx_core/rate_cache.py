"""
Rate Cache

Process-wide memoization of rate lookups keyed by base currency and the
sorted target set. Concurrent callers for the same key share one pending
request; a failed request is evicted so the next caller retries.

Usage:
    from ccx_core.rate_cache import get_rate_cache

    cache = get_rate_cache(client)
    rates = await cache.get_rates("EUR", ["USD", "PLN"])
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from .exceptions import RateLookupError
from .rates.client import RateClient, build_rate_request

logger = logging.getLogger(__name__)


def cache_key(base: str, targets: Iterable[str]) -> str:
    return f"{base}:{','.join(sorted(targets))}"


class RateCache:
    """
    In-memory cache of rate futures.

    No TTL at this layer; freshness is the rate service's concern.
    """

    def __init__(self, client: RateClient):
        self.client = client
        self._entries: Dict[str, "asyncio.Future[Dict[str, float]]"] = {}
        self.request_count = 0

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_rates(self, base: str, targets: List[str]) -> "asyncio.Future[Dict[str, float]]":
        """
        Get rates for ``base`` into ``targets``.

        Returns:
            Shared awaitable resolving to {code: rate}
        """
        key = cache_key(base, targets)
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        pending = asyncio.ensure_future(self._request(base, list(targets)))
        self._entries[key] = pending
        pending.add_done_callback(lambda task: self._evict_failed(key, task))
        return pending

    async def _request(self, base: str, symbols: List[str]) -> Dict[str, float]:
        self.request_count += 1
        response = await self.client.send(build_rate_request(base, symbols))
        if not isinstance(response, dict) or not response.get("ok") or not isinstance(response.get("rates"), dict):
            error = response.get("error") if isinstance(response, dict) else None
            raise RateLookupError(error or "Rates unavailable")
        return response["rates"]

    def _evict_failed(self, key: str, task: "asyncio.Future[Dict[str, float]]") -> None:
        failed = task.cancelled() or task.exception() is not None
        if failed and self._entries.get(key) is task:
            del self._entries[key]
            logger.debug(f"Evicted failed rate lookup {key}")

    def clear(self) -> None:
        self._entries.clear()


# Global rate cache instance
_global_cache: Optional[RateCache] = None


def get_rate_cache(client: Optional[RateClient] = None) -> RateCache:
    """
    Get or create the process-wide rate cache.

    Args:
        client: Rate client (only used on first call)
    """
    global _global_cache

    if _global_cache is None:
        if client is None:
            raise RateLookupError("No rate client configured")
        _global_cache = RateCache(client)

    return _global_cache


def reset_rate_cache() -> None:
    """Drop the process-wide rate cache."""
    global _global_cache
    _global_cache = None
