"""Spawning gatttool as an asyncio subprocess."""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)

# Characteristic handle that enables temperature/humidity notifications
NOTIFY_HANDLE = "0x0038"
# Client characteristic configuration value: notifications on
NOTIFY_ENABLE = "0100"


def build_argv(mac_address: str) -> list[str]:
    """Build gatttool arguments for a one-shot write + listen on the sensor."""
    return [
        "--char-write-req",
        "-b", mac_address,
        "-a", NOTIFY_HANDLE,
        "-n", NOTIFY_ENABLE,
        "--listen",
    ]


async def spawn_gatttool(executable: str, argv: list[str]) -> asyncio.subprocess.Process:
    """Start gatttool with stdout piped and stdin/stderr discarded.

    Raises:
        OSError: if the executable cannot be launched
    """
    logger.debug("Running: %s %s", executable, " ".join(argv))
    return await asyncio.create_subprocess_exec(
        executable,
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
