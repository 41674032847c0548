"""Routes module for Flask endpoints"""

from ccx_server.routes.health import health_bp
from ccx_server.routes.rates import rates_bp

__all__ = ['health_bp', 'rates_bp']
