"""
Lightweight DI container for gateway services.

Stored in ``app.extensions['services']`` during Flask context,
with a global fallback for background threads that run outside
Flask request context.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gateway.services.monitor import StatusMonitor
    from gateway.services.proxy import InstanceProxy


class ServiceContainer:
    """Holds the shared service instances, built on first use."""

    def __init__(self) -> None:
        self._proxy: InstanceProxy | None = None
        self._monitor: StatusMonitor | None = None

    @property
    def proxy(self) -> InstanceProxy:
        if self._proxy is None:
            from gateway.services.proxy import InstanceProxy

            self._proxy = InstanceProxy()
        return self._proxy

    @property
    def monitor(self) -> StatusMonitor:
        if self._monitor is None:
            from gateway.config.loader import GatewayConfig
            from gateway.services.monitor import StatusMonitor

            self._monitor = StatusMonitor(
                interval=GatewayConfig.settings().monitor.interval,
            )
        return self._monitor


# Fallback for background threads (set once at startup in app.py)
_global_container: ServiceContainer | None = None


def get_services() -> ServiceContainer:
    """Return the service container.

    Tries ``current_app.extensions['services']`` first, then falls back
    to the module-level ``_global_container``.
    """
    try:
        from flask import current_app

        return current_app.extensions["services"]
    except (RuntimeError, KeyError):
        pass
    if _global_container is not None:
        return _global_container
    raise RuntimeError("ServiceContainer not initialized")
