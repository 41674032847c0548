"""Health check endpoint"""

from flask import Blueprint, jsonify

from ccx_core import __version__
from ccx_core.config import config

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        "status": "healthy",
        "rates_api": config.rates_api_url,
        "version": __version__
    })
