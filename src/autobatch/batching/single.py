"""
Lifecycle of one batch: collect keys, debounce, then race the fetch function
against the fetch time limit and settle a single shared result.
"""

from __future__ import annotations

import asyncio
import inspect
import typing as t
import uuid
from collections.abc import Mapping

import structlog

from autobatch import validate
from autobatch.batching.items import SingleBatchItems
from autobatch.batching.result import BatchResult
from autobatch.batching.timeout import BatchTimeout
from autobatch.exceptions import BadResponseShapeError, FetchCancelledError, FetchTimeoutError
from autobatch.models import BatchOptions, PushError
from autobatch.status import BatchState, Membership
from autobatch.utils import convert_to_list

log = structlog.get_logger(__name__)


class SingleBatch:
    """
    One bounded, time-windowed collection of keys fetched in a single call.

    States move ``OPEN -> CLOSING -> SETTLED``:

    - ``OPEN``: keys may be pushed; every accepting push rearms the debounce
      timer.
    - ``CLOSING``: the debounce window elapsed (or ``flush`` was called); the
      fetch function runs against the ``max_fetch_time_ms`` deadline.
    - ``SETTLED``: the shared result is resolved or rejected; the batch is
      immutable and reports no membership.

    Parameters
    ----------
    options : BatchOptions | Mapping[str, typing.Any]
        Batch options; validated unless already a ``BatchOptions``.
    initial_items : typing.Iterable[typing.Any] | None, optional
        Keys to seed the batch with. Defaults to ``options.initial_items``.
        A seeded batch arms its debounce timer at construction.

    Notes
    -----
    Must be created while an event loop is running.
    """

    def __init__(
        self,
        options: BatchOptions | Mapping[str, t.Any],
        *,
        initial_items: t.Iterable[t.Any] | None = None,
    ) -> None:
        self._options = validate.batcher_options(options, require_mapping=False)
        seed = self._options.initial_items if initial_items is None else list(initial_items)

        self.batch_id = str(object=uuid.uuid4())
        self._items = SingleBatchItems(
            capacity=self._options.max_batch_size,
            initial_items=seed,
        )
        self._timeout = BatchTimeout(
            delay_ms=self._options.debounce_window_ms,
            callback=self._on_debounce_elapsed,
        )
        self._result = BatchResult()
        self._state = BatchState.OPEN
        self._fetch_runner: asyncio.Task[None] | None = None
        self._late_fetch: asyncio.Future[t.Any] | None = None
        if len(self._items):
            self._timeout.rearm()

        log.debug(
            event="Created batch",
            batch_id=self.batch_id,
            max_batch_size=self._options.max_batch_size,
            debounce_window_ms=self._options.debounce_window_ms,
            seeded_count=len(self._items),
        )

    @property
    def items(self) -> list[t.Any]:
        return self._items.values

    @property
    def result(self) -> BatchResult:
        return self._result

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def is_accepting(self) -> bool:
        return self._state is BatchState.OPEN

    def push_items(self, keys: t.Any) -> list[PushError]:
        """
        Add keys to the batch and rearm the debounce timer.

        Parameters
        ----------
        keys : typing.Any
            A single key or an iterable of keys. Duplicates are collapsed.

        Returns
        -------
        list[PushError]
            Keys refused individually (unsupported type or capacity exceeded),
            so the caller can move overflow keys to another batch.

        Raises
        ------
        EmptyPushError
            If no keys were given.
        BatchFullError
            If the batch is already full.
        BatchStartedError
            If the batch stopped accepting keys.
        """
        validated = validate.push_items(
            convert_to_list(keys),
            self._items,
            is_accepting=self.is_accepting,
        )
        if validated.accepted:
            self._items.add(validated.accepted)
            self._timeout.rearm()

        log.debug(
            event="Pushed keys to batch",
            batch_id=self.batch_id,
            accepted_count=len(validated.accepted),
            rejected_count=len(validated.errors),
            batch_size=len(self._items),
        )
        return validated.errors

    def contains(self, keys: t.Any, membership: Membership = Membership.PRESENT) -> list[t.Any]:
        """
        Return the keys that are (or are not) held by this batch.

        A settled batch reports nothing: its result already fired, so new
        callers must not join it.
        """
        if self._state is BatchState.SETTLED:
            return []
        return self._items.contains(convert_to_list(keys), membership=membership)

    def flush(self) -> bool:
        """
        Start the fetch now instead of waiting for the debounce window.

        Returns
        -------
        bool
            ``True`` if a fetch was started, ``False`` if the batch was empty
            or no longer open.
        """
        if self._state is not BatchState.OPEN or not len(self._items):
            return False
        self._start_fetch(reason="flush")
        return True

    def _on_debounce_elapsed(self) -> None:
        self._start_fetch(reason="debounce")

    def _start_fetch(self, *, reason: str) -> None:
        if self._state is not BatchState.OPEN:
            return
        self._state = BatchState.CLOSING
        self._timeout.cancel()
        keys = self.items

        log.info(
            event="Fetching batch",
            batch_id=self.batch_id,
            key_count=len(keys),
            reason=reason,
            max_fetch_time_ms=self._options.max_fetch_time_ms,
        )
        self._fetch_runner = asyncio.create_task(
            self._run_fetch(keys=keys),
            name=f"autobatch_fetch_{self.batch_id}",
        )

    async def _call_fetch_function(self, *, keys: list[t.Any]) -> t.Any:
        response = self._options.fetch_function(keys)
        if inspect.isawaitable(response):
            response = await response
        return response

    async def _run_fetch(self, *, keys: list[t.Any]) -> None:
        """
        Race the fetch function against the fetch deadline and settle the result.

        Parameters
        ----------
        keys : list[typing.Any]
            Batch keys in insertion order.
        """
        fetch = asyncio.ensure_future(self._call_fetch_function(keys=keys))
        deadline = asyncio.ensure_future(asyncio.sleep(self._options.max_fetch_time_ms / 1000.0))
        try:
            done, _ = await asyncio.wait({fetch, deadline}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            log.warning(event="Batch fetch runner cancelled", batch_id=self.batch_id)
            deadline.cancel()
            fetch.cancel()
            if self._state is not BatchState.SETTLED:
                self._settle(error=FetchCancelledError("Batch fetch was cancelled before it settled"))
            raise

        if fetch in done:
            deadline.cancel()
            self._settle_from_fetch(fetch=fetch)
            return

        # The fetch keeps running; its eventual outcome is dropped.
        self._late_fetch = fetch
        fetch.add_done_callback(self._discard_late_fetch)
        log.error(
            event="Batch fetch timed out",
            batch_id=self.batch_id,
            key_count=len(keys),
            max_fetch_time_ms=self._options.max_fetch_time_ms,
        )
        self._settle(
            error=FetchTimeoutError(
                f"Fetch function did not settle within {self._options.max_fetch_time_ms}ms"
            )
        )

    def _settle_from_fetch(self, *, fetch: asyncio.Future[t.Any]) -> None:
        if fetch.cancelled():
            log.error(event="Batch fetch was cancelled", batch_id=self.batch_id)
            self._settle(error=FetchCancelledError("Fetch function was cancelled"))
            return

        try:
            response = fetch.result()
        except Exception as e:
            log.error(
                event="Batch fetch failed",
                batch_id=self.batch_id,
                error=str(object=e),
            )
            self._settle(error=e)
            return

        if not isinstance(response, (list, tuple)):
            log.error(
                event="Batch fetch returned bad response shape",
                batch_id=self.batch_id,
                response_type=type(response).__name__,
            )
            self._settle(
                error=BadResponseShapeError(
                    f"Fetch function responded with {type(response).__name__}, expected a list"
                )
            )
            return

        log.debug(
            event="Batch fetch completed",
            batch_id=self.batch_id,
            result_count=len(response),
        )
        self._settle(value=list(response))

    def _settle(self, *, value: list[t.Any] | None = None, error: Exception | None = None) -> None:
        self._state = BatchState.SETTLED
        if error is not None:
            self._result.fail(error)
        else:
            self._result.complete(value if value is not None else [])

    def _discard_late_fetch(self, fetch: asyncio.Future[t.Any]) -> None:
        if fetch.cancelled():
            return
        error = fetch.exception()
        log.debug(
            event="Discarded late fetch outcome",
            batch_id=self.batch_id,
            failed=error is not None,
        )

    def __repr__(self) -> str:
        return (
            f"SingleBatch(batch_id={self.batch_id!r}, state={self._state.value!r}, "
            f"size={len(self._items)}/{self._options.max_batch_size})"
        )
