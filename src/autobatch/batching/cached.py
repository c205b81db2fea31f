from __future__ import annotations

import typing as t
from collections.abc import Mapping

import structlog

from autobatch import validate
from autobatch.batching.autobatcher import AutoBatcher
from autobatch.exceptions import ConfigurationError
from autobatch.logging import logging_context
from autobatch.models import BatchOptions
from autobatch.utils import unique_items

log = structlog.get_logger(__name__)


class AutoBatcherCache(AutoBatcher):
    """
    ``AutoBatcher`` that answers from a cache before batching misses.

    Only keys the cache does not hold go through batching; every mapped
    entry fetched for them is written back with ``cache.set(key, value)``.
    Concurrent misses on one key are still collapsed by in-flight dedup.

    Parameters
    ----------
    options : BatchOptions | Mapping[str, typing.Any] | None
        Batcher options; ``cache`` is required.
    name : str | None, optional
        Name bound to log records emitted while serving requests.
    """

    def __init__(
        self,
        options: BatchOptions | Mapping[str, t.Any] | None,
        *,
        name: str | None = None,
    ) -> None:
        super().__init__(options, name=name)
        if self._options.cache is None:
            raise ConfigurationError("Cache must be provided", field="cache")
        self._cache = self._options.cache

    async def make_request(self, keys: t.Any) -> list[t.Any]:
        requested = validate.request_keys(keys)
        unique_keys = unique_items(requested)

        values: dict[t.Any, t.Any] = {}
        misses: list[t.Any] = []
        for key in unique_keys:
            cached = self._cache.get(key)
            if cached is None:
                misses.append(key)
            else:
                values[key] = cached

        log.debug(
            event="Checked cache",
            batcher=self.name,
            hit_count=len(values),
            miss_count=len(misses),
        )

        if misses:
            with logging_context(batcher=self.name):
                pre_results = await self._generate_response(misses)
                for key, value in self._map(misses, pre_results):
                    self._cache.set(key, value)
                    values.setdefault(key, value)

        return self._values_in_order(requested, values)
