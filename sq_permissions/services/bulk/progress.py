"""
Progress tracking for bulk phases.

ProgressCounter is the one piece of state shared by concurrent operations.
ProgressMonitor polls it in the background and prints progress text until
it is stopped.
"""

import asyncio
import sys
import threading
from typing import TextIO

PROGRESS_LINE = "\n  Progress: {current}/{target}"
STILL_WORKING = "."


class ProgressCounter:
    """Lock-guarded integer counting completed items of a phase."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def add(self, amount: int = 1) -> int:
        """Add amount and return the new value."""
        if amount < 0:
            raise ValueError("progress never goes backwards")
        with self._lock:
            self._value += amount
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0


class ProgressMonitor:
    """
    Background reporter printing `current/target` every interval.

    A full progress line is printed when the counter moved since the last
    tick, a single dot otherwise. stop() sets the stop signal and waits for
    the monitor to finish, which includes printing the trailing newline, so
    output written after stop() returns never interleaves with it.

    Usage:
        async with ProgressMonitor(counter, total):
            await do_work()
    """

    def __init__(
        self,
        counter: ProgressCounter,
        target: int,
        interval: float = 2.0,
        stream: TextIO | None = None,
    ):
        self.counter = counter
        self.target = target
        self.interval = interval
        self.stream = stream if stream is not None else sys.stdout
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> "ProgressMonitor":
        if self._task is not None:
            raise RuntimeError("progress monitor already started")
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        return self

    async def stop(self) -> None:
        """Signal the monitor to stop and wait until it has finished."""
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self._stop_event = None

    async def __aenter__(self) -> "ProgressMonitor":
        return self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _run(self) -> None:
        last_value = -1
        while True:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass

            current = self.counter.value
            if current != last_value:
                self._write(PROGRESS_LINE.format(current=current, target=self.target))
                last_value = current
            else:
                self._write(STILL_WORKING)

        self._write("\n")

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()
