"""
Rate Service

Worker-side rate resolution backed by the key-value store:

1. Read ``ccxRates:<BASE>``
2. Fresh (younger than the TTL) and covering every requested symbol -> serve it
3. Otherwise fetch; when a fresh entry exists, merge old and new rates
   (new values win) before writing back

Also answers rate-protocol messages for the clients in ``client.py``.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from ..config import config
from ..storage import KeyValueStore
from .client import GET_RATES
from .frankfurter import FrankfurterClient

logger = logging.getLogger(__name__)

RATES_KEY_PREFIX = "ccxRates:"


def rates_key(base: str) -> str:
    return f"{RATES_KEY_PREFIX}{base}"


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateService:
    """
    Resolves rate tables with a store-backed TTL cache.

    Args:
        store: Persistent key-value store
        fetcher: Object with ``async fetch_rates(base, symbols)``
        ttl_ms: Cache entry lifetime
        clock: Callable returning epoch milliseconds
        run_logger: Optional RunLogger
    """

    def __init__(
        self,
        store: KeyValueStore,
        fetcher=None,
        ttl_ms: Optional[int] = None,
        clock: Optional[Callable[[], int]] = None,
        run_logger=None,
    ):
        self.store = store
        self.fetcher = fetcher or FrankfurterClient()
        self.ttl_ms = ttl_ms if ttl_ms is not None else config.rates_ttl_ms
        self.clock = clock or _now_ms
        self.run_logger = run_logger

    def _log(self, message: str, data: Any = None):
        """Log to run logger if available."""
        if self.run_logger:
            if data:
                self.run_logger.log_text(f"{message}: {json.dumps(data, ensure_ascii=False)}")
            else:
                self.run_logger.log_text(message)

    def _is_fresh(self, entry: Any, now: int) -> bool:
        return (
            isinstance(entry, dict)
            and isinstance(entry.get("fetchedAt"), (int, float))
            and isinstance(entry.get("rates"), dict)
            and now - entry["fetchedAt"] < self.ttl_ms
        )

    async def get_rates(self, base: str, symbols: List[str]) -> Dict[str, float]:
        key = rates_key(base)
        cached = await self.store.get(key)
        now = self.clock()
        fresh = self._is_fresh(cached, now)

        if fresh and all(symbol in cached["rates"] for symbol in symbols):
            logger.debug(f"Serving cached rates for {base}")
            return cached["rates"]

        fetched = await self.fetcher.fetch_rates(base, symbols)
        merged = {**cached["rates"], **fetched} if fresh else dict(fetched)

        await self.store.set(key, {"base": base, "fetchedAt": now, "rates": merged})
        self._log(f"Fetched rates for {base}", {"symbols": symbols, "cached": len(merged)})
        return merged

    async def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Answer a rate-protocol message.

        Returns:
            Protocol response, or None for messages of another type
        """
        if not isinstance(message, dict) or message.get("type") != GET_RATES:
            return None

        base = message.get("base")
        symbols = message.get("symbols")
        if not base or not isinstance(symbols, list):
            return {"ok": False, "error": "Invalid rate request"}

        try:
            rates = await self.get_rates(base, symbols)
        except Exception as e:
            logger.warning(f"Rate lookup failed for {base}: {e}")
            return {"ok": False, "error": str(e) or "Rate lookup failed"}
        return {"ok": True, "rates": rates}
