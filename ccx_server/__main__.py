"""Main entry point for the ccx rate worker"""

import logging

from ccx_core.config import config
from ccx_server.app import app

logger = logging.getLogger(__name__)


def main():
    """Run the ccx rate worker"""
    logger.info(f"Starting ccx rate worker on port {config.api_port}...")
    logger.info(f"Rates API: {config.rates_api_url}")
    logger.info(f"Rates TTL: {config.rates_ttl_ms}ms")
    app.run(host='0.0.0.0', port=config.api_port, debug=False, use_reloader=False)


if __name__ == '__main__':
    main()
