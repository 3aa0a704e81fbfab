"""Background asyncio loop exposing coroutines through a blocking facade."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Coroutine, TypeVar

T = TypeVar("T")


class BackgroundLoop:
    """Runs an event loop on a daemon thread; ``run`` blocks until a coroutine finishes."""

    def __init__(self, name: str = "lazyadmin-loop") -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name=name,
            daemon=True,
        )
        self._thread.start()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def running(self) -> bool:
        return self._loop.is_running()

    def run(self, coro: Coroutine[Any, Any, T], *, timeout: float | None = None) -> T:
        """Schedule ``coro`` on the loop thread and wait for its result."""

        if not self._loop.is_running():
            coro.close()
            raise RuntimeError("background loop is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout)

    def shutdown(self) -> None:
        """Stop the loop thread."""

        if not self._loop.is_running():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=1)


__all__ = ["BackgroundLoop"]
