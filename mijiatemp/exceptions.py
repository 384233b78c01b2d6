"""Exception types for MijiaTemp."""


class MijiaTempError(Exception):
    """Base class for all MijiaTemp errors."""


class ConfigError(MijiaTempError):
    """Invalid poller or application configuration."""


class PollerError(MijiaTempError):
    """Poller used outside its start/stop lifecycle."""


class ParseError(MijiaTempError, ValueError):
    """A gatttool notification line could not be decoded."""


class RecordError(MijiaTempError):
    """A record handle was used after it was discarded."""
