"""
Configuration and value types shared by the batching engine.
"""

from __future__ import annotations

import typing as t
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from autobatch.utils import convert_to_list, is_supported_key

FetchFunction = t.Callable[[list[t.Any]], t.Any]
MappingFunction = t.Callable[[list[t.Any], list[t.Any]], t.Iterable[t.Any]]

DEFAULT_DEBOUNCE_WINDOW_MS = 250
DEFAULT_MAX_BATCH_SIZE = 1000
DEFAULT_MAX_FETCH_TIME_MS = 15000


class BatchOptions(BaseModel):
    """
    Validated, immutable configuration of a batcher.

    Parameters
    ----------
    fetch_function : FetchFunction
        Bulk fetch called once per batch with the batch keys in insertion order.
        May be synchronous or return an awaitable.
    mapping_function : MappingFunction | None
        Projects ``(keys, pre_results)`` to ``(key, value)`` entries.
        Required by ``AutoBatcher``, unused by a standalone ``SingleBatch``.
    max_batch_size : int
        Hard capacity of one batch, within ``[5, 1000]``.
    max_fetch_time_ms : int
        Time allowed to the fetch function before the batch fails, within
        ``[500, 30000]``.
    debounce_window_ms : int
        Quiet period after the last push before a batch fetches, within
        ``[50, 1500]``.
    cache : typing.Any | None
        Object exposing ``get(key)`` and ``set(key, value, expiry_ms=None)``.
    initial_items : list[typing.Any]
        Keys seeded into the first batch.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, extra="forbid")

    fetch_function: t.Callable[..., t.Any]
    mapping_function: t.Callable[..., t.Any] | None = None
    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, ge=5, le=1000)
    max_fetch_time_ms: int = Field(default=DEFAULT_MAX_FETCH_TIME_MS, ge=500, le=30000)
    debounce_window_ms: int = Field(default=DEFAULT_DEBOUNCE_WINDOW_MS, ge=50, le=1500)
    cache: t.Any | None = None
    initial_items: list[t.Any] = Field(default_factory=list)

    @field_validator("cache")
    @classmethod
    def check_cache_contract(cls, value: t.Any) -> t.Any:
        if value is None:
            return value
        for method in ("get", "set"):
            if not callable(getattr(value, method, None)):
                raise ValueError(f"cache must expose a callable '{method}'")
        return value

    @field_validator("initial_items", mode="before")
    @classmethod
    def normalize_initial_items(cls, value: t.Any) -> list[t.Any]:
        return convert_to_list(value)

    @field_validator("initial_items")
    @classmethod
    def check_initial_items(cls, value: list[t.Any], info: ValidationInfo) -> list[t.Any]:
        unsupported = [item for item in value if not is_supported_key(item)]
        if unsupported:
            raise ValueError(f"unsupported key type for {unsupported!r}")
        max_batch_size = info.data.get("max_batch_size")
        if max_batch_size is not None and len(value) > max_batch_size:
            raise ValueError(f"{len(value)} keys exceed max_batch_size={max_batch_size}")
        return value


class PushErrorReason(str, Enum):
    UNSUPPORTED_TYPE = "unsupported key type"
    CAPACITY_EXCEEDED = "capacity exceeded"


@dataclass(frozen=True)
class PushError:
    """A key a batch refused without rejecting the whole push."""

    key: t.Any
    reason: PushErrorReason


@dataclass(frozen=True)
class ValidatedPush:
    accepted: list[t.Any]
    errors: list[PushError]


class MappedResult(t.NamedTuple):
    """One output of the mapping function, tied to the key it answers."""

    key: t.Any
    value: t.Any
