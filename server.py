# server.py
"""
Small HTTP service that hands the Firebase web client configuration to
browsers, plus a health check.

    GET /api/config/firebase
    GET /health
"""

import logging
from datetime import datetime, timezone

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS

import config
from utils.client_config import ConfigError, KeyVaultSecretSource, resolve_client_config


def default_resolver():
    return resolve_client_config(vault=KeyVaultSecretSource(), allow_fallback=config.fallback_allowed())


def create_app(resolver=None) -> Flask:
    resolver = resolver or default_resolver

    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": "*"}}, send_wildcard=True)

    @app.get("/api/config/firebase")
    def firebase_config():
        app.logger.info("Request for Firebase config received")
        try:
            client_config = resolver()
        except ConfigError as exc:
            app.logger.error("Firebase config unavailable: %s (%s)", exc, "; ".join(exc.reasons))
            return jsonify({
                "error": "Failed to fetch configuration",
                "details": exc.reasons or [str(exc)],
                "missing": exc.missing,
            }), 503
        return jsonify(client_config)

    @app.get("/health")
    def health():
        return jsonify({
            "status": "healthy",
            "env": config.app_env(),
            "port": config.get_setting("PORT", "8080"),
            "time": datetime.now(timezone.utc).isoformat(),
        })

    return app


def main():
    load_dotenv()
    config.configure_logging()
    port = int(config.get_setting("PORT", "8080"))
    logging.getLogger(__name__).info("Starting config server (env=%s) on port %d", config.app_env(), port)
    create_app().run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
