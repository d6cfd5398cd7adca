"""
WhatsApp Gateway control plane: Flask application.

Wires the tenant, internal and admin blueprints, the database pool and
migrations, rate limiting, metrics and the background status monitor.
Run with ``gunicorn gateway.app:app``.
"""

import atexit
import logging
import os
import re

from flask import Flask, jsonify

# =============================================================================
# Logging Setup
# =============================================================================

from gateway.observability import setup_json_logging

_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
setup_json_logging(level=_log_level)
logger = logging.getLogger("whatsapp-gateway")


# Filter sensitive data from logs
class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in log messages."""

    SENSITIVE_PATTERNS = [
        (re.compile(r'api_key["\']?\s*[:=]\s*["\']?[^"\'}\s]+', re.I), 'api_key=***'),
        (re.compile(r'token["\']?\s*[:=]\s*["\']?[^"\'}\s]+', re.I), 'token=***'),
        (re.compile(r'secret["\']?\s*[:=]\s*["\']?[^"\'}\s]+', re.I), 'secret=***'),
        (re.compile(r'postgres(ql)?://[^:/\s]+:[^@\s]+@', re.I), 'postgresql://***:***@'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            for pattern, replacement in self.SENSITIVE_PATTERNS:
                record.msg = pattern.sub(replacement, record.msg)
        return True


logger.addFilter(SensitiveDataFilter())

# =============================================================================
# Flask Application
# =============================================================================

app = Flask(__name__)

# Initialize rate limiter
from gateway.api.rate_limit import init_limiter, limiter
init_limiter(app)

# Initialize Prometheus metrics (auto-instruments all routes, exposes /metrics)
from gateway.observability import init_metrics, ERRORS_TOTAL
init_metrics(app)

# =============================================================================
# Database
# =============================================================================

from gateway.persistence.database import close_pool, get_db_connection, get_pool_stats, init_pool
from gateway.persistence.migrations import run_migrations

try:
    run_migrations()
    init_pool()
except Exception as e:
    logger.error(f"Database initialization error: {e}")
    raise

atexit.register(close_pool)

# =============================================================================
# Blueprints
# =============================================================================

from gateway.api.routes import api
from gateway.api.internal import internal
from gateway.api.admin import admin
from gateway.api.validators import ValidationError
from gateway.api.responses import api_error
from gateway.config.loader import GatewayConfig
from gateway.config.secrets import secrets_provider
from gateway.domain.errors import GatewayError, OrchestrationError

app.register_blueprint(api)
app.register_blueprint(internal)
app.register_blueprint(admin)

# Connectors write state continuously
limiter.exempt(internal)

# Initialize DI container
from gateway.container import ServiceContainer
import gateway.container as container_mod

container = ServiceContainer()
app.extensions["services"] = container
container_mod._global_container = container


# =============================================================================
# Health
# =============================================================================

@app.route("/health")
@limiter.exempt
def health() -> tuple:
    """Health check endpoint."""
    db_ok = False
    try:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                db_ok = True
    except Exception as e:
        logger.warning(f"Health check database error: {e}")

    status = "healthy" if db_ok else "degraded"
    return jsonify({
        "status": status,
        "database": db_ok,
        "pool": get_pool_stats(),
        "vault": secrets_provider.use_vault,
    }), 200 if db_ok else 503


# =============================================================================
# Error Handlers
# =============================================================================

@app.errorhandler(ValidationError)
def handle_validation_error(e: ValidationError) -> tuple:
    """Handle validation errors."""
    return api_error(str(e), 400)


@app.errorhandler(GatewayError)
def handle_gateway_error(e: GatewayError) -> tuple:
    """Answer with the error's status and public message; details stay in the log."""
    from flask import request

    status = e.http_status if isinstance(e, OrchestrationError) else e.status_code
    if status >= 500:
        ERRORS_TOTAL.labels(endpoint=request.endpoint or "unknown").inc()
        cause = e.__cause__ if e.__cause__ is not None else e
        logger.error(f"{request.method} {request.path} failed ({status}): {cause}")
    return api_error(e.public_message, status)


@app.errorhandler(404)
def handle_not_found(e: Exception) -> tuple:
    """Handle 404 errors."""
    return api_error("Resource not found", 404)


@app.errorhandler(405)
def handle_method_not_allowed(e: Exception) -> tuple:
    return api_error("Method not allowed", 405)


@app.errorhandler(500)
def handle_server_error(e: Exception) -> tuple:
    """Handle 500 errors."""
    ERRORS_TOTAL.labels(endpoint="app_500").inc()
    logger.error(f"Internal server error: {getattr(e, 'original_exception', e)}")
    return api_error("Internal server error", 500)


# =============================================================================
# Startup
# =============================================================================

# Start background services (works with both gunicorn and direct execution)
if GatewayConfig.settings().monitor.enabled:
    container.monitor.start()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=3000, debug=False)
