from __future__ import annotations

import asyncio
import typing as t

from autobatch.exceptions import BatchAlreadySettledError


class BatchResult:
    """
    Shared, settle-exactly-once result of one batch.

    Every caller waiting on the batch awaits the same underlying future.
    Waiters are shielded, so cancelling one caller never cancels the batch
    for the others.

    Notes
    -----
    Must be created while an event loop is running.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[list[t.Any]] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def complete(self, value: list[t.Any]) -> None:
        """
        Resolve the result.

        Raises
        ------
        BatchAlreadySettledError
            If the result was already completed or failed.
        """
        self._ensure_pending()
        self._future.set_result(value)

    def fail(self, error: BaseException) -> None:
        """
        Reject the result with ``error``.

        Raises
        ------
        BatchAlreadySettledError
            If the result was already completed or failed.
        """
        self._ensure_pending()
        self._future.set_exception(error)
        # Retrieved here so unawaited batches do not warn; waiters still get it.
        self._future.exception()

    async def wait(self) -> list[t.Any]:
        return await asyncio.shield(self._future)

    def _ensure_pending(self) -> None:
        if self._future.done():
            raise BatchAlreadySettledError("Batch result has already been settled")
