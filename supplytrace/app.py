"""
SupplyTrace - Flask Application

JSON API over the supply chain ledger: products, custody events,
per-batch traces and dashboard statistics.
"""

import os

from flask import Flask, jsonify

from supplytrace.config import config, configure_logging
from supplytrace.services.supply_chain import TraceAggregator, create_trace_aggregator

EXTENSION_KEY = "supplytrace"


def create_app(config_name=None, aggregator=None):
    """Application factory."""

    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app.config.from_object(config.get(config_name, config["default"]))

    configure_logging(app.config["LOG_LEVEL"])

    # One aggregator (and cache) per application
    if aggregator is None:
        aggregator = create_trace_aggregator(config.get(config_name, config["default"]))
    app.extensions[EXTENSION_KEY] = aggregator

    # Register blueprints
    from supplytrace.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Error handlers
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return app


def get_aggregator(app) -> TraceAggregator:
    return app.extensions[EXTENSION_KEY]


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", 3002)), debug=True)
