"""HTTP API server exposing published records and service health."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from aiohttp import web

from . import __version__
from .health import HealthRegistry
from .records import RecordStore

logger = logging.getLogger(__name__)


def build_status_payload(store: RecordStore, health: HealthRegistry) -> dict:
    """Build the status JSON payload with all services and records."""
    records = {}
    for name, value in sorted(store.get_all_values().items()):
        age = store.get_age(name)
        records[name] = {
            "value": value,
            "age_seconds": int(age.total_seconds()) if age is not None else None,
        }

    return {
        "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "healthy": health.is_healthy(),
        "services": {name: status.to_dict() for name, status in sorted(health.all().items())},
        "records": records,
    }


class ApiServer:
    """aiohttp web server exposing records and health as JSON."""

    def __init__(
        self,
        store: RecordStore,
        health: HealthRegistry,
        port: int,
        host: str = "0.0.0.0",
    ) -> None:
        self._store = store
        self._health = health
        self._port = port
        self._host = host
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        """Build the aiohttp application with all routes."""
        app = web.Application()
        app.router.add_get("/api/v1/status", self._handle_status)
        app.router.add_get("/api/v1/health", self._handle_health)
        # Registered first, the record route's name pattern also matches ".../history"
        app.router.add_get("/api/v1/records/{name:.+}/history", self._handle_history)
        app.router.add_get("/api/v1/records/{name:.+}", self._handle_record)
        return app

    async def start(self) -> None:
        """Start the API server."""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info("API server started on port %d", self._port)

    async def stop(self) -> None:
        """Stop the API server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("API server stopped")

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        status = "ok" if self._health.is_healthy() else "degraded"
        return web.json_response({"status": status, "version": __version__})

    async def _handle_status(self, request: web.Request) -> web.Response:
        """Return all service states and record values as JSON."""
        return web.json_response(build_status_payload(self._store, self._health))

    async def _handle_record(self, request: web.Request) -> web.Response:
        """Return the current value of one record."""
        name = request.match_info["name"]
        value = self._store.get_value(name)
        if value is None:
            return web.json_response({"error": f"record not found: {name}"}, status=404)
        return web.json_response(value)

    async def _handle_history(self, request: web.Request) -> web.Response:
        """Return the value history of one record, oldest first."""
        name = request.match_info["name"]
        try:
            hours = int(request.query.get("hours", 24))
        except ValueError:
            return web.json_response({"error": "hours must be an integer"}, status=400)

        if self._store.get_value(name) is None:
            return web.json_response({"error": f"record not found: {name}"}, status=404)
        return web.json_response({"name": name, "history": self._store.get_history(name, hours=hours)})
