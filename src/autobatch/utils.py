import typing as t
from collections.abc import Iterable

Key = t.Union[int, float, str]

_SCALAR_TYPES = (str, bytes, bytearray)


def is_supported_key(item: t.Any) -> bool:
    """Return ``True`` for keys that compare by value: ``int``, ``float`` and ``str``."""
    return isinstance(item, (int, float, str)) and not isinstance(item, bool)


def convert_to_list(value: t.Any) -> list[t.Any]:
    """
    Normalize a scalar or an iterable of items into a list.

    Parameters
    ----------
    value : typing.Any
        Single item, iterable of items, or ``None``.

    Returns
    -------
    list[typing.Any]
        ``[]`` for ``None``, ``[value]`` for scalars (strings included),
        otherwise the iterable materialized as a list.
    """
    if value is None:
        return []
    if isinstance(value, _SCALAR_TYPES) or not isinstance(value, Iterable):
        return [value]
    return list(value)


def unique_items(items: Iterable[t.Any]) -> list[t.Any]:
    """
    Drop repeated items while keeping first-seen order.

    Unhashable items are compared by equality so that invalid keys can still
    be reported back individually instead of failing the whole call.
    """
    seen: set[t.Any] = set()
    seen_unhashable: list[t.Any] = []
    unique: list[t.Any] = []
    for item in items:
        try:
            if item in seen:
                continue
            seen.add(item)
        except TypeError:
            if item in seen_unhashable:
                continue
            seen_unhashable.append(item)
        unique.append(item)
    return unique


def flatten(groups: Iterable[Iterable[t.Any]]) -> list[t.Any]:
    """Flatten a sequence of sequences by one level."""
    return [item for group in groups for item in group]
