# azza_erp/__init__.py
from __future__ import annotations

from flask import Flask, jsonify

from .settings import Config
from .extensions import db, migrate, limiter
from .errors import ErpError


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    # ======================
    # Register Blueprints + CLI
    # ======================
    from .routes import main
    from .cli import register_cli

    app.register_blueprint(main)
    register_cli(app)

    # ======================
    # Action errors -> JSON
    # ======================
    @app.errorhandler(ErpError)
    def erp_error(e: ErpError):
        if e.status_code >= 500:
            app.logger.error("%s: %s", e.kind, e.message)
        else:
            app.logger.warning("%s: %s", e.kind, e.message)
        return jsonify(e.to_dict()), e.status_code

    # ======================
    # Rate limit error handler
    # ======================
    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"error": "rate_limited", "message": "Too many requests. Please try again later."}), 429

    # ======================
    # Upload too large
    # ======================
    @app.errorhandler(413)
    def too_large(e):
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return jsonify({"error": "too_large", "message": f"Upload exceeds the {limit_mb} MB limit."}), 413

    # ======================
    # Not found handler
    # ======================
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "not_found", "message": "Resource not found."}), 404

    return app
