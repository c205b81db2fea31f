from __future__ import annotations

import asyncio
import typing as t


class BatchTimeout:
    """
    Debounce timer owning a single scheduled callback.

    Parameters
    ----------
    delay_ms : int
        Quiet period, in milliseconds, before ``callback`` runs.
    callback : typing.Callable[[], None]
        Zero-argument callable invoked on the event loop once the delay elapses.

    Notes
    -----
    ``rearm`` must be called from a running event loop.
    """

    def __init__(self, delay_ms: int, callback: t.Callable[[], None]) -> None:
        self.delay_ms = delay_ms
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def rearm(self) -> None:
        """Cancel the pending invocation, if any, and schedule a new one."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000.0, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
