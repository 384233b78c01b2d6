"""Health registry observed by the supervisor and the status API."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from .models import HealthState, HealthStatus

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    HealthState.OK: logging.INFO,
    HealthState.BUSY: logging.DEBUG,
    HealthState.PROBLEM: logging.WARNING,
    HealthState.ERROR: logging.ERROR,
    HealthState.INACTIVE: logging.INFO,
}


class HealthRegistry:
    """Tracks the latest health state per service."""

    def __init__(self) -> None:
        self._states: dict[str, HealthStatus] = {}
        self._lock = Lock()

    def set_state(
        self,
        service: str,
        state: HealthState,
        message: Optional[str] = None,
    ) -> HealthStatus:
        """Record a new health state for a service."""
        status = HealthStatus(state=state, message=message)
        with self._lock:
            self._states[service] = status

        if message:
            logger.log(_LOG_LEVELS[state], "%s: %s (%s)", service, state.name, message)
        else:
            logger.log(_LOG_LEVELS[state], "%s: %s", service, state.name)
        return status

    def get(self, service: str) -> Optional[HealthStatus]:
        """Get the latest health state of a service."""
        with self._lock:
            return self._states.get(service)

    def all(self) -> dict[str, HealthStatus]:
        """Get the latest health state of every service."""
        with self._lock:
            return dict(self._states)

    def is_healthy(self) -> bool:
        """True if no service is in PROBLEM or ERROR state."""
        with self._lock:
            return not any(
                s.state in (HealthState.PROBLEM, HealthState.ERROR)
                for s in self._states.values()
            )
