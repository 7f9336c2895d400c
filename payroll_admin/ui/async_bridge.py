"""
Run coroutines on a background asyncio loop and hand results back to Qt.

The GUI thread never awaits anything and never touches grid or page state
directly: it submits a coroutine (or a plain callable, via ``apply``) with a
callback, and the callback is invoked on the GUI thread once the work
finishes (through a queued Qt signal).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class AsyncBridge(QObject):
    _finished = Signal(object, object, object)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="payroll-async", daemon=True)
        self._finished.connect(self._deliver)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        if self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread.is_alive():
            self._thread.join(timeout=5)

    def submit(
        self,
        coro: Awaitable[Any],
        on_done: Optional[Callback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Future:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)

        def _done(f: Future) -> None:
            if f.cancelled():
                return
            exc = f.exception()
            if exc is not None:
                logger.error("Background task failed", exc_info=exc)
                self._finished.emit(on_error, None, exc)
            else:
                self._finished.emit(on_done, f.result(), None)

        future.add_done_callback(_done)
        return future

    def apply(self, fn: Callable[..., Any], *args: Any, on_done: Optional[Callback] = None) -> Future:
        """Run a plain callable on the loop thread, after everything submitted before it."""

        async def _invoke() -> Any:
            return fn(*args)

        return self.submit(_invoke(), on_done=on_done)

    def call(self, coro: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """Block the caller until ``coro`` finishes; for startup and login only."""
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout)

    @Slot(object, object, object)
    def _deliver(self, callback: Optional[Callable], result: Any, exc: Optional[BaseException]) -> None:
        if callback is None:
            return
        callback(exc if exc is not None else result)
