"""Application factory and app-wide configuration."""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from backend.app.api.routes import api_bp
from backend.config import Settings, settings as default_settings
from backend.core.cache import TTLCache
from backend.core.market_data import MarketDataGateway
from backend.core.rate_limit import SlidingWindowLimiter
from backend.database import init_db

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_logging(app: Flask, level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    app.logger.handlers.clear()
    app.logger.addHandler(handler)
    app.logger.setLevel(level)

    backend_logger = logging.getLogger("backend")
    if not backend_logger.handlers:
        backend_logger.addHandler(handler)
    backend_logger.setLevel(level)


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[MarketDataGateway] = None,
) -> Flask:
    """Build the Flask app instance."""
    settings = settings or default_settings
    app = Flask(__name__)
    _configure_logging(app, settings.log_level)

    CORS(
        app,
        resources={r"/api/*": {"origins": settings.cors_origins_list}},
        supports_credentials=True,
    )

    init_db(settings.database_path)
    app.logger.info("Lead database ready at %s", settings.database_path)

    if gateway is None:
        gateway = MarketDataGateway(
            cache=TTLCache(settings.market_cache_ttl_seconds),
            timeout=settings.upstream_timeout_seconds,
            backoff_seconds=settings.upstream_backoff_seconds,
        )

    app.config["SETTINGS"] = settings
    app.extensions["market_gateway"] = gateway
    app.extensions["rate_limiter"] = SlidingWindowLimiter(
        settings.rate_limit_requests, settings.rate_limit_window_seconds
    )

    app.register_blueprint(api_bp, url_prefix="/api")
    return app
