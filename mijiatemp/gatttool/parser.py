"""Parser for gatttool notification lines from Mijia LYWSD03MMC sensors."""

import logging
from datetime import datetime
from typing import Optional

from ..exceptions import ParseError
from ..models import Reading

logger = logging.getLogger(__name__)

VALUE_MARKER = "value:"


def parse_notification(line: str, timestamp: Optional[datetime] = None) -> Reading:
    """
    Decode one gatttool notification line into a Reading.

    Format (after ``value:``, space separated hex bytes):
    - Byte 0: Temperature low byte
    - Byte 1: Temperature high byte (uint16 little-endian, 0.01°C per unit)
    - Byte 2: Humidity (%)
    - Bytes 3-4: Battery voltage (ignored)

    Example::

        Notification handle = 0x0036 value: 8e 01 3c 4d 0b

    Raises:
        ParseError: if the marker is missing or the payload is malformed
    """
    idx = line.find(VALUE_MARKER)
    if idx < 0:
        raise ParseError(f"no '{VALUE_MARKER}' marker in line: {line!r}")

    tokens = line[idx + len(VALUE_MARKER):].split()
    if len(tokens) < 3:
        raise ParseError(f"expected at least 3 bytes, got {len(tokens)}: {line!r}")

    try:
        lo, hi, humid = (_hex_byte(tok) for tok in tokens[:3])
    except ValueError as e:
        raise ParseError(f"invalid hex byte in line {line!r}: {e}") from e

    temperature = round(((hi << 8) | lo) / 100, 2)

    reading = Reading(temperature=temperature, humidity=humid)
    if timestamp is not None:
        reading.timestamp = timestamp

    logger.debug("Decoded values: %.2f°C, %d%%", reading.temperature, reading.humidity)
    return reading


def _hex_byte(token: str) -> int:
    value = int(token, 16)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{token!r} is not a single byte")
    return value
