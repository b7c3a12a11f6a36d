"""Cancellable, fire-once scheduled callbacks for the asyncio loop."""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger


class DebouncedTask:
    """Trailing-edge debounce around a synchronous callback.

    :meth:`arm` (re)starts the quiet-period timer; only the last arming
    within ``delay`` seconds runs the callback, once.  :meth:`cancel`
    drops a pending run and :meth:`flush` runs it immediately.  Arming
    requires a running event loop.
    """

    def __init__(self, callback: Callable[[], None], delay: float) -> None:
        self._callback = callback
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """Cancel a pending run; return True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def flush(self) -> bool:
        """Run a pending callback now; return True if one was pending."""
        if not self.cancel():
            return False
        self._run()
        return True

    def _fire(self) -> None:
        self._handle = None
        self._run()

    def _run(self) -> None:
        try:
            self._callback()
        except Exception:
            # Timer callbacks have no caller to propagate to.
            logger.exception("Scheduled callback {!r} failed", self._callback)
