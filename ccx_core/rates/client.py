"""
Rate clients: the engine-side end of the rate protocol.

Request:  {"type": "getRates", "base": "EUR", "symbols": ["USD", "PLN"]}
Response: {"ok": true, "rates": {...}} or {"ok": false, "error": "..."}
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..exceptions import RateLookupError

logger = logging.getLogger(__name__)

GET_RATES = "getRates"


def build_rate_request(base: str, symbols: List[str]) -> Dict[str, Any]:
    return {"type": GET_RATES, "base": base, "symbols": list(symbols)}


class RateClient:
    """Abstract async request/response channel to a rate resolver."""

    async def send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


class LocalRateClient(RateClient):
    """Resolves rates in-process through a RateService."""

    def __init__(self, service):
        self.service = service

    async def send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.service.handle_message(message)
        if response is None:
            raise RateLookupError(f"Unsupported message type: {message.get('type')}")
        return response


class HttpRateClient(RateClient):
    """Resolves rates through the ccx worker server (POST /api/rates)."""

    def __init__(self, worker_url: str, timeout: float = 10.0, session_factory=None):
        self.worker_url = worker_url.rstrip("/")
        self.timeout = timeout
        self.session_factory = session_factory or aiohttp.ClientSession

    async def send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.worker_url}/api/rates"
        try:
            async with self.session_factory() as session:
                async with session.post(
                    url,
                    json=message,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    data: Optional[Dict[str, Any]] = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RateLookupError(f"Rate worker unreachable at {url}: {e}") from e

        if not isinstance(data, dict):
            raise RateLookupError("Unexpected rate worker response")
        return data
