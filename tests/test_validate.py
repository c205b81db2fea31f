"""
Tests for option, request and push validation in autobatch.validate.
"""

import typing as t

import pytest

from autobatch import validate
from autobatch.batching.items import SingleBatchItems
from autobatch.exceptions import (
    BatchFullError,
    BatchStartedError,
    ConfigurationError,
    EmptyPushError,
    InputValidationError,
)
from autobatch.models import BatchOptions, PushError, PushErrorReason
from tests.mocks.fetchers import map_by_id


def _fetch(keys: list[t.Any]) -> list[t.Any]:
    return list(keys)


def _options(**overrides: t.Any) -> dict[str, t.Any]:
    options: dict[str, t.Any] = {"fetch_function": _fetch, "mapping_function": map_by_id}
    options.update(overrides)
    return options


def test_batcher_options_applies_defaults() -> None:
    """Test that omitted numeric options fall back to their defaults."""
    options = validate.batcher_options(_options(), require_mapping=True)

    assert isinstance(options, BatchOptions)
    assert options.debounce_window_ms == 250
    assert options.max_batch_size == 1000
    assert options.max_fetch_time_ms == 15000
    assert options.cache is None
    assert options.initial_items == []


def test_batcher_options_returns_validated_instance_unchanged() -> None:
    """Test that an already validated BatchOptions is passed through."""
    options = BatchOptions(fetch_function=_fetch, mapping_function=map_by_id)

    assert validate.batcher_options(options, require_mapping=True) is options


def test_batcher_options_requires_options() -> None:
    """Test that missing options fail construction."""
    with pytest.raises(ConfigurationError, match="Options must be provided"):
        validate.batcher_options(None, require_mapping=False)


def test_batcher_options_rejects_non_mapping() -> None:
    """Test that options must be a mapping."""
    with pytest.raises(ConfigurationError, match="must be a mapping"):
        validate.batcher_options(["fetch_function"], require_mapping=False)  # type: ignore[arg-type]


@pytest.mark.parametrize("fetch_function", [None, ...])
def test_batcher_options_requires_fetch_function(fetch_function: t.Any) -> None:
    """Test that an absent fetch function is reported as not provided."""
    options = _options()
    if fetch_function is ...:
        del options["fetch_function"]
    else:
        options["fetch_function"] = fetch_function

    with pytest.raises(ConfigurationError, match="Fetch function must be provided") as exc_info:
        validate.batcher_options(options, require_mapping=False)
    assert exc_info.value.field == "fetch_function"


def test_batcher_options_rejects_non_callable_fetch_function() -> None:
    """Test that a fetch function must be callable."""
    with pytest.raises(ConfigurationError, match="Fetch function must be callable"):
        validate.batcher_options(_options(fetch_function=True), require_mapping=False)


def test_batcher_options_requires_mapping_function_when_asked() -> None:
    """Test that the mapping function is only mandatory for batchers that map."""
    options = _options()
    del options["mapping_function"]

    assert validate.batcher_options(options, require_mapping=False).mapping_function is None
    with pytest.raises(ConfigurationError, match="Mapping function must be provided") as exc_info:
        validate.batcher_options(options, require_mapping=True)
    assert exc_info.value.field == "mapping_function"


def test_batcher_options_rejects_non_callable_mapping_function() -> None:
    """Test that a mapping function must be callable."""
    with pytest.raises(ConfigurationError, match="Mapping function must be callable"):
        validate.batcher_options(_options(mapping_function="map"), require_mapping=True)


@pytest.mark.parametrize(
    ("field", "value", "label"),
    [
        ("max_batch_size", 4, "Max batch size"),
        ("max_batch_size", 1001, "Max batch size"),
        ("max_fetch_time_ms", 499, "Max fetch time"),
        ("max_fetch_time_ms", 30001, "Max fetch time"),
        ("debounce_window_ms", 49, "Debounce window"),
        ("debounce_window_ms", 2000, "Debounce window"),
    ],
)
def test_batcher_options_rejects_out_of_range_values(field: str, value: int, label: str) -> None:
    """Test that numeric options outside their range fail with a range error."""
    with pytest.raises(ConfigurationError, match=f"{label} does not fall within allowed range") as exc_info:
        validate.batcher_options(_options(**{field: value}), require_mapping=True)
    assert exc_info.value.field == field


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("max_batch_size", 5),
        ("max_batch_size", 1000),
        ("max_fetch_time_ms", 500),
        ("max_fetch_time_ms", 30000),
        ("debounce_window_ms", 50),
        ("debounce_window_ms", 1500),
    ],
)
def test_batcher_options_accepts_range_bounds(field: str, value: int) -> None:
    """Test that range bounds are inclusive."""
    options = validate.batcher_options(_options(**{field: value}), require_mapping=True)

    assert getattr(options, field) == value


def test_batcher_options_reports_unknown_option() -> None:
    """Test that misspelled options are not silently ignored."""
    with pytest.raises(ConfigurationError, match="not a recognized option"):
        validate.batcher_options(_options(max_size=10), require_mapping=True)


def test_batcher_options_rejects_cache_without_contract() -> None:
    """Test that a cache must expose get and set."""
    with pytest.raises(ConfigurationError, match="Cache is invalid") as exc_info:
        validate.batcher_options(_options(cache=object()), require_mapping=True)
    assert exc_info.value.field == "cache"


def test_batcher_options_normalizes_initial_items() -> None:
    """Test that a single initial item is wrapped into a list."""
    options = validate.batcher_options(_options(initial_items="seed"), require_mapping=True)

    assert options.initial_items == ["seed"]


@pytest.mark.parametrize(
    "initial_items",
    [
        [[1]],
        list(range(6)),
    ],
)
def test_batcher_options_rejects_bad_initial_items(initial_items: list[t.Any]) -> None:
    """Test that seeded keys must be valid keys and fit in one batch."""
    with pytest.raises(ConfigurationError, match="Initial items is invalid"):
        validate.batcher_options(
            _options(initial_items=initial_items, max_batch_size=5),
            require_mapping=True,
        )


@pytest.mark.parametrize(
    ("keys", "expected"),
    [
        ("a", ["a"]),
        (7, [7]),
        (["a", "b", "a"], ["a", "b", "a"]),
        (("a", 2, 3.5), ["a", 2, 3.5]),
        (iter([1, 2]), [1, 2]),
    ],
)
def test_request_keys_normalizes_input(keys: t.Any, expected: list[t.Any]) -> None:
    """Test that scalars and iterables become a list without dropping duplicates."""
    assert validate.request_keys(keys) == expected


@pytest.mark.parametrize("keys", [None, [], ()])
def test_request_keys_rejects_empty_input(keys: t.Any) -> None:
    """Test that a request without keys fails."""
    with pytest.raises(InputValidationError, match="No keys provided"):
        validate.request_keys(keys)


@pytest.mark.parametrize("keys", [[["a"]], [True], [None], [{"a": 1}], ["a", b"b"]])
def test_request_keys_rejects_unsupported_types(keys: list[t.Any]) -> None:
    """Test that keys must be int, float or str."""
    with pytest.raises(InputValidationError, match="unsupported key type"):
        validate.request_keys(keys)


def test_push_items_rejects_empty_push() -> None:
    """Test that an empty push is a hard error."""
    with pytest.raises(EmptyPushError):
        validate.push_items([], SingleBatchItems(capacity=5), is_accepting=True)


def test_push_items_rejects_full_batch() -> None:
    """Test that pushing to a full batch rejects the whole push."""
    items = SingleBatchItems(capacity=5, initial_items=[1, 2, 3, 4, 5])

    with pytest.raises(BatchFullError, match="length limit reached"):
        validate.push_items([6], items, is_accepting=True)


def test_push_items_rejects_started_batch() -> None:
    """Test that pushing to a batch that stopped accepting rejects the whole push."""
    with pytest.raises(BatchStartedError, match="already started"):
        validate.push_items(["a"], SingleBatchItems(capacity=5), is_accepting=False)


def test_push_items_reports_unsupported_types_softly() -> None:
    """Test that unsupported keys are refused one by one with a stable reason."""
    result = validate.push_items(["a", ["b"], None, 3], SingleBatchItems(capacity=5), is_accepting=True)

    assert result.accepted == ["a", 3]
    assert result.errors == [
        PushError(key=["b"], reason=PushErrorReason.UNSUPPORTED_TYPE),
        PushError(key=None, reason=PushErrorReason.UNSUPPORTED_TYPE),
    ]
    assert result.errors[0].reason.value == "unsupported key type"


def test_push_items_skips_keys_already_stored() -> None:
    """Test that stored keys neither consume capacity nor produce errors."""
    items = SingleBatchItems(capacity=5, initial_items=["a", "b"])

    result = validate.push_items(["a", "c", "b", "d"], items, is_accepting=True)

    assert result.accepted == ["c", "d"]
    assert result.errors == []


@pytest.mark.parametrize(
    ("key_count", "accepted_count"),
    [(4, 4), (5, 5), (6, 5)],
)
def test_push_items_accepts_first_keys_that_fit(key_count: int, accepted_count: int) -> None:
    """Test capacity boundaries: the first keys that fit are accepted in input order."""
    keys = [f"k{index}" for index in range(key_count)]

    result = validate.push_items(keys, SingleBatchItems(capacity=5), is_accepting=True)

    assert result.accepted == keys[:accepted_count]
    assert [error.key for error in result.errors] == keys[accepted_count:]
    assert all(error.reason is PushErrorReason.CAPACITY_EXCEEDED for error in result.errors)


def test_push_items_counts_capacity_from_current_size() -> None:
    """Test that capacity is measured against the keys already stored."""
    items = SingleBatchItems(capacity=5, initial_items=[1, 2, 3])

    result = validate.push_items([4, None, 6, 7], items, is_accepting=True)

    assert result.accepted == [4, 6]
    assert [(error.key, error.reason) for error in result.errors] == [
        (None, PushErrorReason.UNSUPPORTED_TYPE),
        (7, PushErrorReason.CAPACITY_EXCEEDED),
    ]
