"""
Rate limiting for the gateway API.

Uses Flask-Limiter with in-memory storage (limits are per gunicorn worker).
"""

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from gateway.api.responses import api_error
from gateway.config.loader import GatewayConfig

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
)

# Write limit: read from config at init time, used by route decorators
write_limit = "30/minute"


def get_write_limit() -> str:
    return write_limit


def init_limiter(app: Flask) -> None:
    """Attach the limiter to the Flask app and configure from gateway config."""
    global write_limit

    rl_config = GatewayConfig.settings().security.rate_limiting

    if not rl_config.enabled:
        app.config["RATELIMIT_ENABLED"] = False

    write_limit = rl_config.write_limit
    app.config["RATELIMIT_DEFAULT"] = rl_config.default_limit

    limiter.init_app(app)

    @app.errorhandler(429)
    def rate_limit_handler(e):
        return api_error("Rate limit exceeded. Try again later.", 429)
