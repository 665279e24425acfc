"""Application factory and app-wide configuration."""

from __future__ import annotations

import uuid
from typing import Optional

from flask import Flask, g, request
from flask_cors import CORS

from investment_tracker.app.api.routes import api_bp
from investment_tracker.app.config import Settings, load_settings
from investment_tracker.utils.logging import get_logger, set_request_id, setup_logging

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Build the Flask app instance."""
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = Flask(__name__)
    app.config.update(
        SETTINGS=settings,
        MAX_CONTENT_LENGTH=settings.max_payload_bytes,
        DEFAULT_INFLATION_PERCENT=settings.default_inflation_percent,
        STORAGE_PATH=settings.storage_path,
    )

    CORS(
        app,
        resources={r"/api/*": {"origins": list(settings.cors_origins)}},
        supports_credentials=True,
    )

    @app.before_request
    def _assign_request_id() -> None:
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        set_request_id(g.request_id)

    @app.after_request
    def _echo_request_id(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.register_blueprint(api_bp, url_prefix="/api")
    logger.info("app created env=%s", settings.env)
    return app
