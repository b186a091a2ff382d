"""
Process-wide stop signal shared by the watcher and every collector.

A ``StopContext`` is cancelled exactly once. Cancelling it wakes every
coroutine awaiting ``wait()``, runs the registered ``on_cancel`` callbacks
(used to close open log streams so their reader threads unblock) and cancels
all derived child contexts. ``cancel()`` may be called from any thread.

Example:
    ```python
    ctx = StopContext()
    loop.add_signal_handler(signal.SIGINT, ctx.cancel)

    child = ctx.derive()          # cancelled together with ctx
    unregister = child.on_cancel(stream.close)
    ```
"""

import asyncio
import itertools
import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

log = logging.getLogger('loks.context')


def _resolve(fut: "asyncio.Future[None]") -> None:
    if not fut.done():
        fut.set_result(None)


class StopContext:
    """Cancellable signal that can be awaited, polled and observed."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._waiters: List[Tuple[asyncio.AbstractEventLoop, "asyncio.Future[None]"]] = []
        self._detach: Optional[Callable[[], None]] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Fire the signal; repeated calls are no-ops."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
            waiters = list(self._waiters)
            self._waiters.clear()

        for loop, fut in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve, fut)

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                log.warning(f"[context] cancel callback failed: {e.__class__.__name__}: {e}")

    async def wait(self) -> None:
        """Suspend until the context is cancelled."""
        loop = asyncio.get_running_loop()
        fut: "asyncio.Future[None]" = loop.create_future()
        entry = (loop, fut)
        with self._lock:
            if self._event.is_set():
                return
            self._waiters.append(entry)
        try:
            await fut
        finally:
            with self._lock:
                if entry in self._waiters:
                    self._waiters.remove(entry)

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run ``callback`` when the context is cancelled.

        If the context is already cancelled the callback runs immediately.

        Returns:
            Callable[[], None]: Removes the callback again; safe to call twice
        """
        with self._lock:
            if not self._event.is_set():
                key = next(self._ids)
                self._callbacks[key] = callback
                return lambda: self._remove(key)
        callback()
        return lambda: None

    def _remove(self, key: int) -> None:
        with self._lock:
            self._callbacks.pop(key, None)

    def derive(self) -> "StopContext":
        """
        Create a child context cancelled together with this one.

        Cancelling the child does not affect the parent. Call ``detach()``
        on the child once it is no longer needed so the parent does not keep
        a reference to it.
        """
        child = StopContext()
        child._detach = self.on_cancel(child.cancel)
        return child

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
