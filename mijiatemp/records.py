"""In-memory record store that pollers publish readings into."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Optional

from .exceptions import RecordError

logger = logging.getLogger(__name__)

# Keep record history for 24 hours
HISTORY_DURATION = timedelta(hours=24)
# Maximum history entries per record (~1 reading per minute = 1440 per day)
MAX_HISTORY_PER_RECORD = 2000


class Record:
    """Handle to a named record in a RecordStore.

    ``set`` overwrites the record's value. After ``discard`` the handle can
    no longer be written; the stored value stays readable from the store.
    """

    def __init__(self, store: RecordStore, name: str) -> None:
        self._store = store
        self._name = name
        self._discarded = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def discarded(self) -> bool:
        return self._discarded

    def get(self) -> Optional[dict]:
        """Get the current value of the record."""
        return self._store.get_value(self._name)

    def set(self, value: dict) -> None:
        """Overwrite the record's value."""
        if self._discarded:
            raise RecordError(f"record {self._name!r} has been discarded")
        self._store._write(self._name, value)

    def discard(self) -> None:
        """Release this handle."""
        if self._discarded:
            return
        self._discarded = True
        self._store._release(self)


class RecordStore:
    """Thread-safe key-value store of records with 24h history."""

    def __init__(self) -> None:
        self._values: dict[str, dict] = {}
        self._updated: dict[str, datetime] = {}
        self._history: dict[str, deque[tuple[datetime, dict]]] = {}
        self._handles: dict[str, int] = {}
        self._lock = Lock()

    def get_record(self, name: str) -> Record:
        """Acquire a handle to the named record."""
        with self._lock:
            self._handles[name] = self._handles.get(name, 0) + 1
        logger.debug("Acquired record handle: %s", name)
        return Record(self, name)

    def _release(self, record: Record) -> None:
        with self._lock:
            count = self._handles.get(record.name, 0) - 1
            if count > 0:
                self._handles[record.name] = count
            else:
                self._handles.pop(record.name, None)
        logger.debug("Discarded record handle: %s", record.name)

    def _write(self, name: str, value: dict) -> None:
        now = datetime.now()
        with self._lock:
            self._values[name] = dict(value)
            self._updated[name] = now

            if name not in self._history:
                self._history[name] = deque(maxlen=MAX_HISTORY_PER_RECORD)

            self._history[name].append((now, dict(value)))
            self._cleanup_old_entries(name, now)

        logger.debug("Record %s set: %s", name, value)

    def _cleanup_old_entries(self, name: str, now: datetime) -> None:
        """Remove history older than HISTORY_DURATION. Must be called with lock held."""
        cutoff = now - HISTORY_DURATION
        history = self._history[name]

        while history and history[0][0] < cutoff:
            history.popleft()

    def get_value(self, name: str) -> Optional[dict]:
        """Get the current value of a record."""
        with self._lock:
            value = self._values.get(name)
            return dict(value) if value is not None else None

    def get_all_values(self) -> dict[str, dict]:
        """Get the current values of all records."""
        with self._lock:
            return {name: dict(value) for name, value in self._values.items()}

    def get_history(self, name: str, hours: int = 24) -> list[dict[str, Any]]:
        """Get value history for a record, oldest first."""
        cutoff = datetime.now() - timedelta(hours=hours)

        with self._lock:
            if name not in self._history:
                return []

            return [dict(value) for ts, value in self._history[name] if ts >= cutoff]

    def get_age(self, name: str) -> Optional[timedelta]:
        """Get the time since a record was last written."""
        with self._lock:
            updated = self._updated.get(name)
        if updated:
            return datetime.now() - updated
        return None

    def handle_count(self, name: str) -> int:
        """Number of live handles for a record."""
        with self._lock:
            return self._handles.get(name, 0)
