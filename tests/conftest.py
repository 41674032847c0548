"""
Shared fakes and fixtures for ccx tests
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import pytest

from ccx_core.document import Document
from ccx_core.engine import AnnotationEngine
from ccx_core.exceptions import RateFetchError
from ccx_core.options import OPTIONS_KEY
from ccx_core.rate_cache import RateCache, reset_rate_cache
from ccx_core.rates.client import RateClient
from ccx_core.site_state import SITE_STATE_KEY
from ccx_core.storage import MemoryStore

HOST = "shop.example"

RATES = {"USD": 1.08, "EUR": 1.0, "PLN": 4.3, "GBP": 0.86}


class FakeRateClient(RateClient):
    """Answers getRates from a fixed table; can fail or block on a gate."""

    def __init__(self, rates: Optional[Dict[str, float]] = None, ok: bool = True):
        self.rates = dict(RATES if rates is None else rates)
        self.ok = ok
        self.gate: Optional[asyncio.Event] = None
        self.messages: List[Dict[str, Any]] = []

    async def send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.messages.append(message)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if not self.ok:
            return {"ok": False, "error": "Rates unavailable upstream"}
        return {
            "ok": True,
            "rates": {s: self.rates[s] for s in message["symbols"] if s in self.rates},
        }


class FakeFetcher:
    """Stands in for FrankfurterClient."""

    def __init__(self, rates: Optional[Dict[str, float]] = None):
        self.rates = dict(RATES if rates is None else rates)
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    async def fetch_rates(self, base: str, symbols: List[str]) -> Dict[str, float]:
        self.calls.append((base, list(symbols)))
        if self.error is not None:
            raise self.error
        return {s: self.rates[s] for s in symbols if s in self.rates}

    async def fetch_currencies(self) -> Dict[str, str]:
        return {"EUR": "Euro", "GBP": "British Pound"}


class FakeResponse:
    def __init__(self, status: int = 200, payload: Any = None):
        self.status = status
        self.payload = payload

    async def json(self, content_type=None):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Minimal aiohttp.ClientSession replacement recording every request."""

    def __init__(self, response, calls: List[tuple]):
        self.response = response
        self.calls = calls

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def _request(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def get(self, url: str, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self._request("POST", url, **kwargs)


@pytest.fixture(autouse=True)
def _fresh_rate_cache():
    reset_rate_cache()
    yield
    reset_rate_cache()


@pytest.fixture
def rate_client():
    return FakeRateClient()


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def session_factory():
    """Build a (factory, calls) pair answering every request with ``response``."""
    def build(response):
        calls: List[tuple] = []
        return (lambda: FakeSession(response, calls)), calls
    return build


@pytest.fixture
def client_error():
    return aiohttp.ClientConnectionError("connection refused")


@pytest.fixture
def fetch_error():
    return RateFetchError("Rate fetch failed: 500")


@pytest.fixture
def enabled_store():
    return MemoryStore({
        SITE_STATE_KEY: {HOST: True},
        OPTIONS_KEY: {"targets": ["USD", "EUR", "PLN"]},
    })


@pytest.fixture
def make_engine(enabled_store, rate_client):
    """Start an engine on ``body`` and wait for its first scan to settle."""
    engines: List[AnnotationEngine] = []

    async def factory(body, store=None, client=None, hostname=HOST, **kwargs):
        document = Document(body, hostname=hostname)
        engine = AnnotationEngine(
            document,
            store if store is not None else enabled_store,
            RateCache(client if client is not None else rate_client),
            locale="en_US",
            debounce=10,
            **kwargs,
        )
        engines.append(engine)
        await engine.start()
        await engine.drain()
        return engine

    yield factory

    for engine in engines:
        engine.stop()


@pytest.fixture
def make_rate_client():
    return FakeRateClient


@pytest.fixture
def fake_response():
    return FakeResponse
