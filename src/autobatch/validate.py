"""
Stateless checks for batcher options, request keys and batch pushes.
"""

from __future__ import annotations

import typing as t
from collections.abc import Mapping

from pydantic import ValidationError

from autobatch.exceptions import (
    BatchFullError,
    BatchStartedError,
    ConfigurationError,
    EmptyPushError,
    InputValidationError,
)
from autobatch.models import BatchOptions, PushError, PushErrorReason, ValidatedPush
from autobatch.utils import convert_to_list, is_supported_key, unique_items

if t.TYPE_CHECKING:
    from autobatch.batching.items import SingleBatchItems

OPTIONS_NOT_PROVIDED = "Options must be provided"
EMPTY_REQUEST = "No keys provided"
EMPTY_PUSH = "Cannot push an empty set of keys to a batch"
BATCH_STARTED = "Cannot push keys to a batch that has already started"
BATCH_FULL = "Batch length limit reached"

_FIELD_LABELS = {
    "fetch_function": "Fetch function",
    "mapping_function": "Mapping function",
    "max_batch_size": "Max batch size",
    "max_fetch_time_ms": "Max fetch time",
    "debounce_window_ms": "Debounce window",
    "cache": "Cache",
    "initial_items": "Initial items",
}
_RANGE_ERROR_TYPES = frozenset(
    {"greater_than", "greater_than_equal", "less_than", "less_than_equal"}
)


def _configuration_error(*, error: ValidationError) -> ConfigurationError:
    """
    Translate the first pydantic error into a named configuration failure.

    Parameters
    ----------
    error : ValidationError
        Error raised while validating ``BatchOptions``.

    Returns
    -------
    ConfigurationError
        Error carrying a message specific to the field and the failed check.
    """
    detail = error.errors()[0]
    loc = detail.get("loc") or ()
    field = str(loc[0]) if loc else None
    label = _FIELD_LABELS.get(field or "", f"Option '{field}'")
    error_type = detail["type"]

    if error_type == "missing" or (detail.get("input") is None and error_type != "value_error"):
        message = f"{label} must be provided"
    elif error_type == "callable_type":
        message = f"{label} must be callable"
    elif error_type in _RANGE_ERROR_TYPES:
        message = f"{label} does not fall within allowed range"
    elif error_type == "extra_forbidden":
        message = f"{label} is not a recognized option"
    else:
        message = f"{label} is invalid: {detail['msg']}"
    return ConfigurationError(message, field=field)


def batcher_options(
    options: BatchOptions | Mapping[str, t.Any] | None,
    *,
    require_mapping: bool,
) -> BatchOptions:
    """
    Validate batcher options once, at construction.

    Parameters
    ----------
    options : BatchOptions | Mapping[str, typing.Any] | None
        Already validated options or raw keyword options.
    require_mapping : bool
        Whether a mapping function is mandatory (``AutoBatcher``).

    Returns
    -------
    BatchOptions
        Validated options.

    Raises
    ------
    ConfigurationError
        If options are absent, a required function is missing or not callable,
        or a numeric option is out of range.
    """
    if options is None:
        raise ConfigurationError(OPTIONS_NOT_PROVIDED)

    if isinstance(options, BatchOptions):
        validated = options
    elif isinstance(options, Mapping):
        try:
            validated = BatchOptions.model_validate(dict(options))
        except ValidationError as error:
            raise _configuration_error(error=error) from error
    else:
        raise ConfigurationError(
            f"Options must be a mapping or BatchOptions, got {type(options).__name__}"
        )

    if require_mapping and validated.mapping_function is None:
        raise ConfigurationError(
            f"{_FIELD_LABELS['mapping_function']} must be provided",
            field="mapping_function",
        )
    return validated


def request_keys(keys: t.Any) -> list[t.Any]:
    """
    Normalize the keys of one request.

    Parameters
    ----------
    keys : typing.Any
        A single key or an iterable of keys.

    Returns
    -------
    list[typing.Any]
        Keys in caller order, duplicates kept.

    Raises
    ------
    InputValidationError
        If there are no keys or some keys are not ``int``, ``float`` or ``str``.
    """
    normalized = convert_to_list(keys)
    if not normalized:
        raise InputValidationError(EMPTY_REQUEST)

    unsupported = [key for key in normalized if not is_supported_key(key)]
    if unsupported:
        raise InputValidationError(
            f"{PushErrorReason.UNSUPPORTED_TYPE.value}: {unsupported!r}. "
            "Accepted types are int, float and str"
        )
    return normalized


def push_items(
    keys: list[t.Any],
    items: SingleBatchItems,
    *,
    is_accepting: bool,
) -> ValidatedPush:
    """
    Split a push into accepted keys and soft per-key errors.

    Keys are considered in input order. Keys already stored are skipped,
    keys of an unsupported type are refused, and once capacity runs out
    every later key is refused as ``capacity exceeded``.

    Raises
    ------
    EmptyPushError
        If ``keys`` is empty after deduplication.
    BatchFullError
        If the batch is already at capacity.
    BatchStartedError
        If the batch no longer accepts keys.
    """
    keys = unique_items(keys)
    if not keys:
        raise EmptyPushError(EMPTY_PUSH)
    if items.is_full:
        raise BatchFullError(BATCH_FULL)
    if not is_accepting:
        raise BatchStartedError(BATCH_STARTED)

    accepted: list[t.Any] = []
    errors: list[PushError] = []
    remaining = items.remaining_capacity
    for key in keys:
        if not is_supported_key(key):
            errors.append(PushError(key=key, reason=PushErrorReason.UNSUPPORTED_TYPE))
        elif items.contains([key]):
            continue
        elif remaining <= 0:
            errors.append(PushError(key=key, reason=PushErrorReason.CAPACITY_EXCEEDED))
        else:
            accepted.append(key)
            remaining -= 1
    return ValidatedPush(accepted=accepted, errors=errors)
