"""
Main endpoint for users.
Exposes ``batch_requester``, which builds the right batcher for the given
options, and ``BatcherContainer``, a caller-owned registry of named batchers.
"""

import typing as t

from autobatch.batching.autobatcher import AutoBatcher
from autobatch.batching.cached import AutoBatcherCache
from autobatch.cache import CacheProtocol
from autobatch.models import (
    DEFAULT_DEBOUNCE_WINDOW_MS,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_FETCH_TIME_MS,
    FetchFunction,
    MappingFunction,
)


def batch_requester(
    fetch_function: FetchFunction,
    mapping_function: MappingFunction,
    *,
    debounce_window_ms: int = DEFAULT_DEBOUNCE_WINDOW_MS,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    max_fetch_time_ms: int = DEFAULT_MAX_FETCH_TIME_MS,
    cache: CacheProtocol | None = None,
    initial_items: t.Iterable[t.Any] | None = None,
    name: str | None = None,
) -> AutoBatcher:
    """
    Build a batcher collapsing ``make_request`` calls into bulk fetches.<br>
    Keys requested within one debounce window share a single call to ``fetch_function``.<br>
    Keys already waiting in an unsettled batch are joined instead of fetched again.

    Parameters
    ----------
    fetch_function : FetchFunction
        Called with a list of keys; returns (or resolves to) a list of raw results.
    mapping_function : MappingFunction
        Called with ``(keys, raw_results)``; returns ``(key, value)`` pairs.
    debounce_window_ms : int, optional
        Quiet period after the last push before a batch is fetched, in ``[50, 1500]``.
    max_batch_size : int, optional
        Maximum keys per fetch call, in ``[5, 1000]``. Overflow spills into new batches.
    max_fetch_time_ms : int, optional
        Time allowed to one fetch call before its batch fails, in ``[500, 30000]``.
    cache : CacheProtocol | None, optional
        When given, values are served from and written to this cache.
    initial_items : typing.Iterable[typing.Any] | None, optional
        Keys seeded into the first batch.
    name : str | None, optional
        Name bound to log records of this batcher.

    Returns
    -------
    AutoBatcher
        An ``AutoBatcherCache`` when ``cache`` is given, else an ``AutoBatcher``.

    Raises
    ------
    ConfigurationError
        If a function is missing or an option is out of range.
    """
    options: dict[str, t.Any] = {
        "fetch_function": fetch_function,
        "mapping_function": mapping_function,
        "debounce_window_ms": debounce_window_ms,
        "max_batch_size": max_batch_size,
        "max_fetch_time_ms": max_fetch_time_ms,
        "cache": cache,
        "initial_items": initial_items,
    }
    if cache is not None:
        return AutoBatcherCache(options, name=name)
    return AutoBatcher(options, name=name)


class BatcherContainer:
    """
    Named batchers shared by whoever holds a reference to the container.

    Notes
    -----
    The first batcher registered under a name wins; later registrations under
    the same name return the existing batcher.
    """

    def __init__(self) -> None:
        self._batchers: dict[str, AutoBatcher] = {}

    def add(self, name: str, batcher: AutoBatcher) -> AutoBatcher:
        """
        Register ``batcher`` under ``name`` unless the name is taken.

        Returns
        -------
        AutoBatcher
            The batcher registered under ``name``.
        """
        return self._batchers.setdefault(name, batcher)

    def get(self, name: str) -> AutoBatcher | None:
        return self._batchers.get(name)

    async def close(self) -> None:
        """Close every registered batcher."""
        for batcher in self._batchers.values():
            await batcher.close()

    def __contains__(self, name: str) -> bool:
        return name in self._batchers

    def __len__(self) -> int:
        return len(self._batchers)
