"""
ccx_server - Rate worker API

Answers rate-protocol messages over HTTP so several engines (CLI runs,
browser sessions) share one store-backed rate cache.
"""

from ccx_server.app import app

__all__ = [
    'app',
]
