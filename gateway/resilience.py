"""
Circuit breakers guarding calls to connector containers, one per node.

A node whose connectors keep timing out is short-circuited for a while so
tenant requests fail fast with 503 instead of tying up worker threads.
"""

from __future__ import annotations

import enum
import threading
import time
from typing import Any, Callable

from prometheus_client import Counter, Gauge


# =============================================================================
# Prometheus Metrics
# =============================================================================

CIRCUIT_STATE = Gauge(
    "gateway_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["name"],
)

CIRCUIT_TRIPS = Counter(
    "gateway_circuit_breaker_trips_total",
    "Number of times the circuit breaker tripped to OPEN",
    ["name"],
)


# =============================================================================
# Circuit Breaker
# =============================================================================

class CircuitState(enum.Enum):
    CLOSED = 0
    OPEN = 1
    HALF_OPEN = 2


class CircuitOpenError(Exception):
    """Raised when the circuit breaker is OPEN and calls are rejected."""

    def __init__(self, name: str, retry_after: float) -> None:
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit '{name}' is OPEN (retry after {retry_after:.0f}s)")


class CircuitBreaker:
    """Thread-safe circuit breaker.

    - CLOSED: calls pass through; consecutive failures are counted.
    - After ``failure_threshold`` consecutive failures the circuit trips to OPEN.
    - OPEN: ``CircuitOpenError`` is raised immediately (no network call).
    - After ``recovery_timeout`` seconds one probe call is let through
      (HALF_OPEN). Probe success closes the circuit, failure reopens it.

    Only exceptions listed in ``failure_types`` count as failures, so a
    connector answering 4xx/5xx does not trip its node's circuit.
    """

    def __init__(
        self,
        name: str = "default",
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        failure_types: tuple[type[BaseException], ...] = (Exception,),
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_types = failure_types

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float = 0.0

        CIRCUIT_STATE.labels(name=self.name).set(CircuitState.CLOSED.value)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute *func* through the circuit breaker.

        The lock is released before the I/O call so concurrent requests to
        the same node are not serialized.
        """
        with self._lock:
            self._maybe_half_open()
            if self._state == CircuitState.OPEN:
                retry_after = self.recovery_timeout - (time.monotonic() - self._opened_at)
                raise CircuitOpenError(self.name, max(0.0, retry_after))

        try:
            result = func(*args, **kwargs)
        except self.failure_types:
            self._record_failure()
            raise

        self._record_success()
        return result

    def reset(self) -> None:
        """Force-reset the circuit to CLOSED (admin / tests)."""
        with self._lock:
            self._failure_count = 0
            self._opened_at = 0.0
            self._transition(CircuitState.CLOSED)

    # ------------------------------------------------------------------
    # Internal helpers (caller holds _lock)
    # ------------------------------------------------------------------

    def _transition(self, state: CircuitState) -> None:
        self._state = state
        CIRCUIT_STATE.labels(name=self.name).set(state.value)

    def _maybe_half_open(self) -> None:
        if (
            self._state == CircuitState.OPEN
            and time.monotonic() - self._opened_at >= self.recovery_timeout
        ):
            self._transition(CircuitState.HALF_OPEN)

    def _trip(self) -> None:
        self._opened_at = time.monotonic()
        self._transition(CircuitState.OPEN)
        CIRCUIT_TRIPS.labels(name=self.name).inc()

    def _record_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.CLOSED)

    def _record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._trip()
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                self._trip()


# =============================================================================
# Per-node registry
# =============================================================================

_breakers_lock = threading.Lock()
_breakers: dict[str, CircuitBreaker] = {}


def get_node_breaker(
    node_name: str,
    failure_threshold: int = 5,
    recovery_timeout: float = 30.0,
    failure_types: tuple[type[BaseException], ...] = (Exception,),
) -> CircuitBreaker:
    """Return the breaker for a node, creating it on first use.

    Thresholds only apply when the breaker is created.
    """
    name = f"node:{node_name}"
    with _breakers_lock:
        breaker = _breakers.get(name)
        if breaker is None:
            breaker = CircuitBreaker(
                name=name,
                failure_threshold=failure_threshold,
                recovery_timeout=recovery_timeout,
                failure_types=failure_types,
            )
            _breakers[name] = breaker
        return breaker


def reset_breakers() -> None:
    """Forget every per-node breaker."""
    with _breakers_lock:
        _breakers.clear()
