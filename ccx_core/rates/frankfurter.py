"""
Frankfurter API client (https://www.frankfurter.app).
"""

import asyncio
import logging
from typing import Dict, List

import aiohttp

from ..config import config
from ..exceptions import RateFetchError

logger = logging.getLogger(__name__)

FALLBACK_CURRENCIES = {
    "USD": "US Dollar",
    "EUR": "Euro",
    "PLN": "Polish Zloty",
}


class FrankfurterClient:
    """Fetches latest rates and the currency list over HTTP."""

    def __init__(self, api_url: str = None, timeout: float = None, session_factory=None):
        self.api_url = (api_url or config.rates_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.rates_timeout
        self.session_factory = session_factory or aiohttp.ClientSession

    async def fetch_rates(self, base: str, symbols: List[str]) -> Dict[str, float]:
        """
        Fetch latest rates for ``base`` into ``symbols``.

        Raises:
            RateFetchError: non-200 status, transport error or unexpected payload
        """
        params = {"from": base, "to": ",".join(symbols)}
        try:
            async with self.session_factory() as session:
                async with session.get(
                    f"{self.api_url}/latest",
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status != 200:
                        raise RateFetchError(f"Rate fetch failed: {resp.status}")
                    data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RateFetchError(f"Rate fetch failed: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("rates"), dict):
            raise RateFetchError("Unexpected rate response")

        logger.debug(f"Fetched {len(data['rates'])} rates for {base}")
        return data["rates"]

    async def fetch_currencies(self) -> Dict[str, str]:
        """Supported currency codes with names; fallback list on any failure."""
        try:
            async with self.session_factory() as session:
                async with session.get(
                    f"{self.api_url}/currencies",
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status != 200:
                        raise RateFetchError("Currency list unavailable")
                    data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, RateFetchError, ValueError) as e:
            logger.warning(f"Using fallback currency list: {e}")
            return dict(FALLBACK_CURRENCIES)

        if not isinstance(data, dict) or not data:
            return dict(FALLBACK_CURRENCIES)
        return data
