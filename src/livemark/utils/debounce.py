"""Trailing-edge debounce built on asyncio timer handles."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

LOGGER = logging.getLogger(__name__)


class Debouncer:
    """Delay ``callback`` until calls stop arriving for ``delay`` seconds.

    Each :meth:`call` cancels the pending timer and keeps only the newest
    arguments. Without a running event loop the callback fires immediately,
    which keeps headless and synchronous callers deterministic.
    """

    def __init__(self, callback: Callable[..., Any], delay: float) -> None:
        self._callback = callback
        self._delay = max(0.0, float(delay))
        self._handle: Optional[asyncio.TimerHandle] = None
        self._args: tuple[Any, ...] = ()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, *args: Any) -> None:
        self.cancel()
        self._args = args
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._run()
            return
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run a pending callback now."""

        if self._handle is not None:
            self._handle.cancel()
            self._run()

    def _run(self) -> None:
        self._handle = None
        args, self._args = self._args, ()
        self._callback(*args)

    def _fire(self) -> None:
        try:
            self._run()
        except Exception:  # pragma: no cover - timer callbacks must not kill the loop
            LOGGER.exception("Debounced callback failed")


__all__ = ["Debouncer"]
