"""Data models for MijiaTemp."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .exceptions import ConfigError

DEFAULT_INTERVAL = 300
DEFAULT_GATTTOOL = "/usr/bin/gatttool"


class HealthState(Enum):
    """Health states reported to the supervisor."""

    OK = "ok"
    BUSY = "busy"
    PROBLEM = "problem"
    ERROR = "error"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class HealthStatus:
    """Health state of one service plus an optional status message."""

    state: HealthState
    message: Optional[str] = None
    changed: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "message": self.message,
            "changed": self.changed.isoformat(),
        }


@dataclass(frozen=True)
class PollerConfig:
    """Configuration for polling a single sensor."""

    mac_address: str
    record_name: str
    interval: float = DEFAULT_INTERVAL
    gatttool: str = DEFAULT_GATTTOOL

    def __post_init__(self) -> None:
        if not self.mac_address:
            raise ConfigError("mac_address is required")
        if not self.record_name:
            raise ConfigError("record_name is required")
        if self.interval is None:
            object.__setattr__(self, "interval", DEFAULT_INTERVAL)
        if self.interval <= 0:
            raise ConfigError(f"interval must be positive, got {self.interval}")
        if not self.gatttool:
            object.__setattr__(self, "gatttool", DEFAULT_GATTTOOL)
        object.__setattr__(self, "mac_address", self.mac_address.upper())


@dataclass
class Reading:
    """A single decoded sensor reading."""

    temperature: float
    humidity: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_record(self) -> dict:
        """Build the value published to the record store."""
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "time": self.timestamp.isoformat(),
        }


@dataclass
class AppConfig:
    """Application configuration."""

    sensors: list[PollerConfig] = field(default_factory=list)
    api_port: Optional[int] = None
