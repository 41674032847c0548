"""Flask application setup for the ccx rate worker"""

import logging

from flask import Flask
from flask_cors import CORS

from ccx_core.config import config
from ccx_server.routes.health import health_bp
from ccx_server.routes.rates import rates_bp

logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = Flask(__name__)
CORS(app)

app.register_blueprint(health_bp)
app.register_blueprint(rates_bp)
