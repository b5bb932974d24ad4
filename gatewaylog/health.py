"""Periodic remote-sink health probe for the dashboard's /health endpoint."""

import logging
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from gatewaylog.config import Config
from gatewaylog.remote import RemoteSink

logger = logging.getLogger(__name__)


class HealthMonitor:
    """Probes the remote sink on an interval and remembers the last answer.

    Logs state transitions only.
    """

    def __init__(self, config: Config, remote: RemoteSink, clock=None):
        self._config = config
        self._remote = remote
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._healthy: bool | None = None
        self._checked_at: datetime | None = None
        self._scheduler: BackgroundScheduler | None = None

    @property
    def is_healthy(self) -> bool:
        with self._lock:
            return bool(self._healthy)

    def check(self) -> bool:
        """Probe once and record the result."""
        if not self._remote.enabled:
            healthy = False
        else:
            healthy = self._remote.is_healthy(timeout=self._config.remote.probe_timeout)

        with self._lock:
            previous = self._healthy
            self._healthy = healthy
            self._checked_at = self._clock()

        if previous is not None and previous != healthy:
            if healthy:
                logger.info("Remote log sink %s is now healthy", self._config.remote.host)
            else:
                logger.warning("Remote log sink %s is now unhealthy", self._config.remote.host)
        return healthy

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "enabled": self._remote.enabled,
                "healthy": self._healthy,
                "checked_at": self._checked_at.isoformat() if self._checked_at else None,
            }

    def start(self) -> bool:
        """Start the background probe job. Returns False when disabled by config."""
        interval = self._config.health_probe_interval
        if interval <= 0 or not self._remote.enabled or self._scheduler is not None:
            return False
        self._scheduler = BackgroundScheduler(daemon=True)
        self._scheduler.add_job(
            self.check, "interval", seconds=interval,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1, coalesce=True,
        )
        self._scheduler.start()
        return True

    def stop(self):
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
