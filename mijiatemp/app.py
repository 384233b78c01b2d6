"""Main application coordinator."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from .api import ApiServer
from .config import load_config
from .health import HealthRegistry
from .models import AppConfig
from .poller import MijiaTempPoller
from .records import RecordStore

logger = logging.getLogger(__name__)


class MijiaTempApp:
    """Main application that runs one poller per configured sensor."""

    def __init__(
        self,
        config_path: Path,
        api_port: Optional[int] = None,
    ) -> None:
        self._config_path = config_path
        self._api_port = api_port
        self._config: Optional[AppConfig] = None
        self._store = RecordStore()
        self._health = HealthRegistry()
        self._pollers: list[MijiaTempPoller] = []
        self._api: Optional[ApiServer] = None
        self._running = False
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def health(self) -> HealthRegistry:
        return self._health

    @property
    def pollers(self) -> list[MijiaTempPoller]:
        return list(self._pollers)

    async def start(self) -> None:
        """Start all components."""
        logger.info("Starting MijiaTemp...")

        self._config = load_config(self._config_path)
        if not self._config.sensors:
            logger.warning("No sensors configured")

        # Start API server if configured (CLI --api-port wins over config)
        api_port = self._api_port or self._config.api_port
        if api_port:
            self._api = ApiServer(self._store, self._health, api_port)
            await self._api.start()

        for sensor in self._config.sensors:
            poller = MijiaTempPoller(
                self._store,
                self._health,
                name=f"mijia-temp:{sensor.record_name}",
            )
            await poller.start(sensor)
            self._pollers.append(poller)

        self._running = True
        logger.info("MijiaTemp started with %d pollers", len(self._pollers))

    async def stop(self) -> None:
        """Stop all components."""
        if not self._running:
            return

        logger.info("Stopping MijiaTemp...")
        self._running = False

        for poller in reversed(self._pollers):
            try:
                await poller.stop()
            except Exception as e:
                logger.error("Error stopping %s: %s", poller.name, e)
        self._pollers.clear()

        if self._api:
            await self._api.stop()
            self._api = None

        logger.info("MijiaTemp stopped")

    async def run(self) -> None:
        """Run the application until shutdown signal."""
        self._shutdown_event = asyncio.Event()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            await self.start()
            await self._shutdown_event.wait()
        finally:
            await self.stop()

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()
