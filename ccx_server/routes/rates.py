"""Rate protocol endpoints"""

import asyncio
import logging
from typing import Optional

from flask import Blueprint, request, jsonify

from ccx_core.config import config
from ccx_core.rates import FrankfurterClient, RateService
from ccx_core.storage import JSONFileStore

logger = logging.getLogger(__name__)

rates_bp = Blueprint('rates', __name__)

# Global service instance, created on first request
_service: Optional[RateService] = None


def get_service() -> RateService:
    global _service
    if _service is None:
        store = JSONFileStore(path=config.store_path, workspace=config.workspace)
        _service = RateService(store, FrankfurterClient())
    return _service


def set_service(service: Optional[RateService]) -> None:
    """Replace the global service (None rebuilds it from config on next use)."""
    global _service
    _service = service


def _run_in_new_loop(coro):
    # Fresh event loop per request; Flask workers have no running loop
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@rates_bp.route('/api/rates', methods=['POST'])
def get_rates():
    """Answer a getRates message"""
    message = request.get_json(silent=True)
    response = _run_in_new_loop(get_service().handle_message(message))
    if response is None:
        kind = message.get('type') if isinstance(message, dict) else None
        logger.warning(f"Rejected message of type {kind!r}")
        return jsonify({"ok": False, "error": "Unsupported message type"}), 400
    return jsonify(response)


@rates_bp.route('/api/currencies', methods=['GET'])
def list_currencies():
    """Supported currency codes with names"""
    fetcher = get_service().fetcher
    if not hasattr(fetcher, 'fetch_currencies'):
        fetcher = FrankfurterClient()
    return jsonify(_run_in_new_loop(fetcher.fetch_currencies()))
