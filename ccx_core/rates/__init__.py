"""
Rate resolution: upstream API client, store-backed rate service and the
request/response clients the engine talks to.
"""

from .client import (
    RateClient,
    LocalRateClient,
    HttpRateClient,
    build_rate_request,
    GET_RATES,
)
from .frankfurter import FrankfurterClient, FALLBACK_CURRENCIES
from .service import RateService, rates_key, RATES_KEY_PREFIX

__all__ = [
    "RateClient",
    "LocalRateClient",
    "HttpRateClient",
    "build_rate_request",
    "GET_RATES",
    "FrankfurterClient",
    "FALLBACK_CURRENCIES",
    "RateService",
    "rates_key",
    "RATES_KEY_PREFIX",
]
