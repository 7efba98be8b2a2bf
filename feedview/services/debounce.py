"""Debounced input signal: settles a fast-changing value after a quiet period."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Cancellable timer that settles a rapidly changing value.

    Every push() cancels the pending timer and starts a new one. When the
    source has been stable for `delay` seconds, `value` becomes the last
    pushed value and `on_settle` is called with it.

    Must be used from inside a running asyncio loop.
    """

    def __init__(self, delay: float, on_settle: Callable[[str], None] | None = None, initial: str = ""):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self._on_settle = on_settle
        self._value = initial
        self._latest = initial
        self._handle: asyncio.TimerHandle | None = None
        self._disposed = False

    @property
    def value(self) -> str:
        """Last settled value."""
        return self._value

    @property
    def latest(self) -> str:
        """Last pushed value, settled or not."""
        return self._latest

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def push(self, value: str) -> None:
        """Record a new source value and restart the quiet-period timer."""
        if self._disposed:
            logger.debug("debounce: push after dispose ignored")
            return

        self._latest = value
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._settle)

    def flush(self) -> None:
        """Settle immediately if a timer is pending."""
        if self._handle is None or self._disposed:
            return
        self._cancel_timer()
        self._settle()

    def dispose(self) -> None:
        """Cancel any pending timer. No callback fires afterwards."""
        self._cancel_timer()
        self._disposed = True

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _settle(self) -> None:
        self._handle = None
        if self._disposed:
            return
        self._value = self._latest
        if self._on_settle is not None:
            self._on_settle(self._value)
