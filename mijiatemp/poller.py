"""Periodic gatttool poller with bounded retry and health reporting."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Awaitable, Callable, Optional

from .exceptions import ParseError, PollerError
from .gatttool import build_argv, parse_notification, spawn_gatttool
from .health import HealthRegistry
from .models import HealthState, HealthStatus, PollerConfig
from .records import Record, RecordStore

logger = logging.getLogger(__name__)

# Retry a failed update after 5 seconds
RETRY_TIMEOUT = 5
# Consecutive failed updates before reporting PROBLEM and waiting for the next interval
MAX_RETRY = 10
# gatttool exits with 130 when interrupted, which is how a successful read ends
SUCCESS_EXIT_CODES = (0, 130, -signal.SIGINT)

SpawnFn = Callable[[str, list], Awaitable["asyncio.subprocess.Process"]]


class MijiaTempPoller:
    """Polls a Mijia sensor by running gatttool once per interval.

    Each update spawns gatttool, skips its first output line, decodes the
    first notification, publishes it and interrupts the process. Abnormal
    exits are retried after a fixed delay, up to MAX_RETRY times.
    """

    # Timeout for gatttool to exit after SIGINT before it is killed
    STOP_TIMEOUT_SECONDS = 10

    def __init__(
        self,
        store: RecordStore,
        health: HealthRegistry,
        name: str = "mijia-temp",
        spawn: SpawnFn = spawn_gatttool,
        retry_timeout: float = RETRY_TIMEOUT,
        max_retry: int = MAX_RETRY,
    ) -> None:
        self._store = store
        self._health = health
        self._name = name
        self._spawn = spawn
        self._retry_timeout = retry_timeout
        self._max_retry = max_retry

        self._config: Optional[PollerConfig] = None
        self._record: Optional[Record] = None
        self._running = False
        self._retry_count = 0
        self._process: Optional[asyncio.subprocess.Process] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._retry_handle: Optional[asyncio.TimerHandle] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def active_process(self) -> Optional[asyncio.subprocess.Process]:
        return self._process

    @property
    def health(self) -> Optional[HealthStatus]:
        return self._health.get(self._name)

    async def start(self, config: PollerConfig) -> None:
        """Start polling. The first update runs immediately."""
        if self._running:
            raise PollerError(f"{self._name} is already running")

        self._config = config
        self._record = self._store.get_record(config.record_name)
        self._retry_count = 0
        self._running = True

        logger.info(
            "Starting %s for %s (interval: %ss, record: %s)",
            self._name,
            config.mac_address,
            config.interval,
            config.record_name,
        )
        self._timer_task = asyncio.create_task(self._run_timer(), name=f"{self._name}_timer")
        self._set_state(HealthState.OK)
        self.update()

    async def stop(self) -> None:
        """Stop polling and wait for a running gatttool to exit."""
        if not self._running:
            self._set_state(HealthState.INACTIVE)
            return

        logger.info("Stopping %s...", self._name)
        self._running = False

        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        self._cancel_retry()
        await self.close_process()

        if self._cycle_task:
            try:
                await asyncio.wait_for(self._cycle_task, timeout=self.STOP_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                logger.warning("%s update did not finish after %ds", self._name, self.STOP_TIMEOUT_SECONDS)
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error("%s update failed during stop: %s", self._name, e)
            self._cycle_task = None

        if self._record:
            self._record.discard()
            self._record = None

        self._set_state(HealthState.INACTIVE)
        logger.info("%s stopped", self._name)

    def update(self) -> None:
        """Schedule one poll cycle."""
        if not self._running:
            return

        # A cycle started by the interval supersedes a pending retry
        self._cancel_retry()

        previous = self._cycle_task
        self._cycle_task = asyncio.create_task(
            self._run_cycle(previous),
            name=f"{self._name}_update",
        )
        self._cycle_task.add_done_callback(self._on_cycle_done)

    async def close_process(self) -> None:
        """Interrupt the active gatttool process and wait until it exits."""
        process = self._process
        if process is None:
            return

        await self._interrupt_and_wait(process)

        if self._process is process:
            self._process = None

    async def _interrupt_and_wait(self, process: asyncio.subprocess.Process) -> None:
        """Send SIGINT and reap the process, killing it if it does not exit."""
        if process.returncode is not None:
            return

        try:
            process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            pass

        try:
            await asyncio.wait_for(process.wait(), timeout=self.STOP_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("gatttool ignored SIGINT for %ds, killing it", self.STOP_TIMEOUT_SECONDS)
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

    async def _run_timer(self) -> None:
        """Trigger an update every interval."""
        while True:
            await asyncio.sleep(self._config.interval)
            self.update()

    async def _run_cycle(self, previous: Optional[asyncio.Task]) -> None:
        if previous is not None and not previous.done():
            logger.debug("Previous update still running, terminating it")
            await self.close_process()
            await asyncio.wait({previous})

        if not self._running:
            return

        if self._retry_count == 0:
            self._set_state(HealthState.BUSY, "updating values ...")
        elif self._retry_count >= self._max_retry:
            self._set_state(HealthState.PROBLEM, "unable to connect to device")
            self._retry_count = 0
            return
        else:
            self._set_state(HealthState.BUSY, f"updating values (retry {self._retry_count}) ...")

        argv = build_argv(self._config.mac_address)
        try:
            process = await self._spawn(self._config.gatttool, argv)
        except OSError as e:
            self._process = None
            logger.error("gatttool process failed: %s", e)
            self._set_state(HealthState.ERROR, "unable to launch gatttool process")
            return

        self._process = process

        if not self._running or self._cycle_task is not asyncio.current_task():
            # stopped or superseded while the process was being spawned
            await self.close_process()
            return

        code: Optional[int] = None
        try:
            await self._read_output(process)
            code = await process.wait()
        except Exception as e:
            logger.error("Reading gatttool output failed: %s", e)
        finally:
            if process.returncode is None:
                await self._interrupt_and_wait(process)
        self._handle_exit(process, code)

    async def _read_output(self, process: asyncio.subprocess.Process) -> None:
        """Read gatttool stdout until EOF."""
        line_count = 0
        while True:
            try:
                raw = await process.stdout.readline()
            except ValueError as e:
                # Line longer than the stream limit, already dropped by the reader
                logger.warning("Skipping gatttool output: %s", e)
                line_count += 1
                continue
            if not raw:
                break

            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            logger.debug("got input: %s", line)
            line_count += 1

            # First line is the write request confirmation, not a notification
            if line_count == 1:
                continue

            self._handle_line(process, line)

    def _handle_line(self, process: asyncio.subprocess.Process, line: str) -> None:
        try:
            reading = parse_notification(line)
        except ParseError as e:
            logger.warning("Skipping gatttool output: %s", e)
            return

        if self._record is None:
            return

        self._record.set(reading.to_record())
        logger.debug(
            "Published %s: %.2f°C, %d%%",
            self._record.name,
            reading.temperature,
            reading.humidity,
        )

        # One reading per update is enough
        if process.returncode is None:
            try:
                process.send_signal(signal.SIGINT)
            except ProcessLookupError:
                pass

    def _handle_exit(self, process: asyncio.subprocess.Process, code: Optional[int]) -> None:
        """Classify a finished update. ``code`` is None if reading its output failed."""
        if self._process is process:
            self._process = None

        if not self._running:
            logger.debug("gatttool finished with code %s after stop", code)
            return

        if self._cycle_task is not asyncio.current_task():
            logger.debug("gatttool finished with code %s after being superseded", code)
            return

        if code in SUCCESS_EXIT_CODES:
            logger.info("gatttool finished with code %d", code)
            self._retry_count = 0
            self._set_state(HealthState.OK)
        else:
            logger.warning("gatttool finished with code %s", code)
            self._retry_count += 1
            self._schedule_retry()

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error("%s update failed: %s", self._name, exc)

    def _schedule_retry(self) -> None:
        self._cancel_retry()
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(self._retry_timeout, self._on_retry)
        logger.debug(
            "Retry %d scheduled in %ss",
            self._retry_count,
            self._retry_timeout,
        )

    def _on_retry(self) -> None:
        self._retry_handle = None
        self.update()

    def _cancel_retry(self) -> None:
        if self._retry_handle:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _set_state(self, state: HealthState, message: Optional[str] = None) -> None:
        self._health.set_state(self._name, state, message)
