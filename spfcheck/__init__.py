"""
Flask application factory for spfcheck.

Creates and configures the Flask application that exposes the SPF checker
over JSON, registers the API blueprint and wires the DNS resolver.
"""

from __future__ import annotations

import logging
import sys

from flask import Flask, Response

from spfcheck.config import Config


def _configure_logging(debug: bool) -> None:
    """Configure root logger for the application.

    Logging is sent to stdout so most WSGI hosts capture it automatically
    without requiring file handlers.

    Format: timestamp  level  logger-name  message

    Args:
        debug: When True, sets the root level to DEBUG.  Otherwise INFO.
    """
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)-8s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
    )

    root_logger = logging.getLogger()
    # Avoid adding duplicate handlers if create_app() is called multiple times
    # (e.g. in tests).
    if not root_logger.handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(level)


def create_app(config_object: object = Config, resolver: object | None = None) -> Flask:
    """Application factory.

    Args:
        config_object: Configuration class or object to load settings from.
        resolver: Optional SpfResolver; a DnsResolver built from the
            configuration is used when omitted.

    Returns:
        A fully configured Flask application instance.
    """
    from spfcheck.checker.resolver import DnsResolver
    from spfcheck.models import DnsSettings

    app = Flask(__name__)
    app.config.from_object(config_object)

    _configure_logging(debug=app.debug)

    if resolver is None:
        resolver = DnsResolver(DnsSettings.from_config(app.config))
    app.extensions["spf_resolver"] = resolver

    from spfcheck.api import bp as api_bp

    app.register_blueprint(api_bp)

    @app.after_request
    def set_security_headers(response: Response) -> Response:
        """Attach security-related HTTP response headers."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Cache-Control"] = "no-store"
        return response

    return app
