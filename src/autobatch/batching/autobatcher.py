"""
AutoBatcher: collapse fine-grained "get by key" calls into bulk fetches.

Each ``make_request`` joins keys that are already pending in an unsettled
batch, places the rest into the latest batch (spilling overflow into new
batches), waits for every batch involved and maps the combined results back
to the requested keys.
"""

from __future__ import annotations

import asyncio
import typing as t
from collections.abc import Mapping

import structlog

from autobatch import validate
from autobatch.batching.registry import Batches
from autobatch.batching.single import SingleBatch
from autobatch.exceptions import MissingResultError
from autobatch.logging import logging_context
from autobatch.models import BatchOptions
from autobatch.status import BatchState
from autobatch.utils import flatten, unique_items

log = structlog.get_logger(__name__)


class AutoBatcher:
    """
    Batch and deduplicate key lookups against a bulk fetch function.

    Parameters
    ----------
    options : BatchOptions | Mapping[str, typing.Any] | None
        Batcher options. ``fetch_function`` and ``mapping_function`` are
        required; see ``BatchOptions`` for ranges and defaults.
    name : str | None, optional
        Name bound to log records emitted while serving requests.

    Raises
    ------
    ConfigurationError
        If options are missing or out of range.

    Examples
    --------
    >>> async def fetch_users(ids):
    ...     return await api.get_users(ids)
    >>> batcher = AutoBatcher(
    ...     {
    ...         "fetch_function": fetch_users,
    ...         "mapping_function": lambda ids, users: [(u["id"], u) for u in users],
    ...     }
    ... )
    >>> alice, bob = await batcher.make_request([1, 2])
    """

    def __init__(
        self,
        options: BatchOptions | Mapping[str, t.Any] | None,
        *,
        name: str | None = None,
    ) -> None:
        self._options = validate.batcher_options(options, require_mapping=True)
        self.name = name
        self._batches = Batches(self._options)

        log.debug(
            event="Initialized AutoBatcher",
            name=name,
            max_batch_size=self._options.max_batch_size,
            debounce_window_ms=self._options.debounce_window_ms,
            max_fetch_time_ms=self._options.max_fetch_time_ms,
            cache_enabled=self._options.cache is not None,
        )

    @property
    def options(self) -> BatchOptions:
        return self._options

    @property
    def batches(self) -> list[SingleBatch]:
        return self._batches.batches

    async def make_request(self, keys: t.Any) -> list[t.Any]:
        """
        Fetch values for one or more keys through the batching engine.

        Parameters
        ----------
        keys : typing.Any
            A single key or an iterable of ``int``, ``float`` or ``str`` keys.

        Returns
        -------
        list[typing.Any]
            Mapped values in the order keys were given; a key given twice
            yields its value twice.

        Raises
        ------
        InputValidationError
            If no keys are given or a key has an unsupported type.
        FetchTimeoutError
            If a batch serving these keys exceeded ``max_fetch_time_ms``.
        FetchCancelledError
            If the fetch serving these keys was cancelled.
        BadResponseShapeError
            If a batch serving these keys got a non-list response.
        MissingResultError
            If the mapping function left a requested key without a value.
        """
        requested = validate.request_keys(keys)
        unique_keys = unique_items(requested)

        with logging_context(batcher=self.name):
            pre_results = await self._generate_response(unique_keys)
            mapped = self._map(unique_keys, pre_results)
            return self._values_in_order(requested, dict(mapped))

    async def _generate_response(self, keys: list[t.Any]) -> list[t.Any]:
        """
        Resolve unique keys to the flattened results of every batch serving them.

        Parameters
        ----------
        keys : list[typing.Any]
            Unique, validated keys.

        Returns
        -------
        list[typing.Any]
            Concatenated fetch results of the awaited batches, in batch order.
        """
        # The first batch may carry seeded keys that must be visible to dedup.
        _ = self._batches.latest
        in_flight = self._batches.find_in_flight(keys)

        awaited: list[SingleBatch] = []
        for batch in in_flight.values():
            if batch not in awaited:
                awaited.append(batch)

        remaining = [key for key in keys if key not in in_flight]
        if remaining:
            for batch in self._batches.push_or_spill(remaining):
                if batch not in awaited:
                    awaited.append(batch)

        log.debug(
            event="Awaiting batches",
            key_count=len(keys),
            in_flight_count=len(in_flight),
            new_count=len(remaining),
            batch_count=len(awaited),
        )
        results = await asyncio.gather(*(batch.result.wait() for batch in awaited))
        return flatten(results)

    def _map(self, keys: list[t.Any], pre_results: list[t.Any]) -> list[tuple[t.Any, t.Any]]:
        """Run the mapping function and unpack its ``(key, value)`` entries."""
        entries = self._options.mapping_function(keys, pre_results)
        return [(key, value) for key, value in entries]

    @staticmethod
    def _values_in_order(requested: list[t.Any], values: dict[t.Any, t.Any]) -> list[t.Any]:
        missing = unique_items(key for key in requested if key not in values)
        if missing:
            log.error(event="Mapping left keys without a value", missing_count=len(missing))
            raise MissingResultError(missing)
        return [values[key] for key in requested]

    async def close(self) -> None:
        """
        Flush every open batch and wait until all batches settle.

        Batch failures are not raised here; the callers waiting on those
        batches receive them.
        """
        pending = [batch for batch in self._batches.batches if batch.state is not BatchState.SETTLED]
        flushed = sum(1 for batch in pending if batch.flush())
        waited = [batch for batch in pending if batch.state is not BatchState.OPEN]

        log.debug(
            event="Closing AutoBatcher",
            name=self.name,
            flushed_count=flushed,
            waiting_count=len(waited),
        )
        await asyncio.gather(*(batch.result.wait() for batch in waited), return_exceptions=True)

    async def __aenter__(self) -> AutoBatcher:
        return self

    async def __aexit__(self, *args: t.Any) -> None:
        await self.close()
