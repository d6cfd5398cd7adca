"""
Background refresh of instance metrics.
"""

import logging
import threading

from gateway.observability import collect_instance_metrics

logger = logging.getLogger("whatsapp-gateway")


class StatusMonitor:
    """Periodically publishes instance counts per status.

    Read-only: it never restarts or reschedules instances.
    """

    def __init__(self, interval: int = 30):
        """
        Initialize status monitor.

        Args:
            interval: Refresh interval in seconds
        """
        self.interval = interval
        self.running = False
        self._stop = threading.Event()

    def start(self) -> None:
        """Start the monitor thread."""
        self.running = True
        self._stop.clear()
        threading.Thread(target=self._monitor_loop, daemon=True).start()
        logger.info("Status monitor started")

    def stop(self) -> None:
        self.running = False
        self._stop.set()

    def run_once(self) -> None:
        try:
            collect_instance_metrics()
        except Exception as e:
            logger.error(f"Monitor error: {e}")

    def _monitor_loop(self) -> None:
        while self.running:
            self.run_once()
            self._stop.wait(self.interval)
