"""Application event loop.

Every state mutation in the navigation core happens on one loop. Platform
adapters that block (subprocesses, TTS engines) run on worker threads and
trampoline their callbacks through ``call_soon``.
"""

import asyncio
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """What the components need from an event loop"""

    def call_soon(self, callback: Callable, *args) -> None:
        """Run callback on the loop. Safe to call from any thread."""
        ...

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        """Run callback after delay seconds. Must be called on the loop."""
        ...

    def time(self) -> float: ...


class EventLoop:
    """asyncio-backed Scheduler"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.new_event_loop()

    def call_soon(self, callback: Callable, *args) -> None:
        self.loop.call_soon_threadsafe(callback, *args)

    def call_later(self, delay: float, callback: Callable, *args) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback, *args)

    def time(self) -> float:
        return self.loop.time()

    def run_until(self, done: Callable[[], bool], poll_interval: float = 0.2):
        """Run the loop until done() returns True"""

        async def _wait():
            while not done():
                await asyncio.sleep(poll_interval)

        self.loop.run_until_complete(_wait())

    def close(self):
        if not self.loop.is_closed():
            self.loop.close()
