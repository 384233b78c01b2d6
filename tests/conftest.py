from __future__ import annotations

import asyncio
import signal
from typing import Callable, Optional

import pytest

from mijiatemp.health import HealthRegistry
from mijiatemp.records import RecordStore

HEADER = "Characteristic value was written successfully"
NOTIFICATION = "Notification handle = 0x0036 value: 8e 01 3c 4d 0b "


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process driven by a script.

    Emits ``lines`` on stdout, then exits with ``exit_code``. With
    ``exit_code=None`` it keeps running (like ``gatttool --listen``) until it
    gets SIGINT, which ends it with ``sigint_code``.
    """

    def __init__(
        self,
        lines: tuple = (),
        exit_code: Optional[int] = None,
        sigint_code: int = 130,
        ignore_sigint: bool = False,
    ) -> None:
        self.pid = 4242
        self.returncode: Optional[int] = None
        self.signals: list[int] = []
        self.stdout = asyncio.StreamReader()
        self._sigint_code = sigint_code
        self._ignore_sigint = ignore_sigint
        self._exited = asyncio.Event()

        for line in lines:
            self.stdout.feed_data(line.encode("utf-8") + b"\n")
        if exit_code is not None:
            self.exit(exit_code)

    def exit(self, code: int) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self._exited.set()

    def send_signal(self, sig: int) -> None:
        if self.returncode is not None:
            raise ProcessLookupError()
        self.signals.append(sig)
        if sig == signal.SIGINT and not self._ignore_sigint:
            self.exit(self._sigint_code)

    def kill(self) -> None:
        self.signals.append(signal.SIGKILL)
        self.exit(-signal.SIGKILL)

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode


class FakeSpawner:
    """Records spawn calls and hands out scripted FakeProcesses.

    Each script entry is either kwargs for FakeProcess or an exception to
    raise. When the script runs out, ``default`` is used.
    """

    def __init__(self, *script, default=None) -> None:
        self.script = list(script)
        self.default = default if default is not None else {"exit_code": 0}
        self.calls: list[tuple[str, list[str], float]] = []
        self.processes: list[FakeProcess] = []

    async def __call__(self, executable: str, argv: list[str]) -> FakeProcess:
        self.calls.append((executable, list(argv), asyncio.get_running_loop().time()))
        entry = self.script.pop(0) if self.script else self.default
        if isinstance(entry, BaseException):
            raise entry
        process = FakeProcess(**entry)
        self.processes.append(process)
        return process

    @property
    def call_times(self) -> list[float]:
        return [t for _, _, t in self.calls]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll predicate until it holds, failing the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met within %.1fs" % timeout)
        await asyncio.sleep(0.005)


@pytest.fixture
def store() -> RecordStore:
    return RecordStore()


@pytest.fixture
def health() -> HealthRegistry:
    return HealthRegistry()
