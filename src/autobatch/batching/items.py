from __future__ import annotations

import typing as t

from autobatch.status import Membership
from autobatch.utils import unique_items


class SingleBatchItems:
    """
    Ordered, deduplicating key set with a fixed capacity.

    Parameters
    ----------
    capacity : int
        Maximum number of keys the set may hold.
    initial_items : typing.Iterable[typing.Any], optional
        Keys stored at construction.
    """

    def __init__(self, capacity: int, initial_items: t.Iterable[t.Any] = ()) -> None:
        self.capacity = capacity
        # dict keeps insertion order and gives O(1) membership for hashable keys
        self._items: dict[t.Any, None] = {}
        self.add(initial_items)

    def add(self, keys: t.Iterable[t.Any]) -> list[t.Any]:
        """Store keys not already present and return the ones added."""
        added = self.contains(keys, membership=Membership.ABSENT)
        for key in added:
            self._items[key] = None
        return added

    def contains(
        self,
        keys: t.Iterable[t.Any],
        membership: Membership = Membership.PRESENT,
    ) -> list[t.Any]:
        """
        Filter ``keys`` by membership in this set.

        Parameters
        ----------
        keys : typing.Iterable[typing.Any]
            Keys to look up, in the order results should come back.
        membership : Membership, optional
            ``PRESENT`` keeps stored keys, ``ABSENT`` keeps the others.

        Returns
        -------
        list[typing.Any]
            Matching keys. Repeated input keys are reported once.
        """
        wanted = membership is Membership.PRESENT
        return [key for key in unique_items(keys) if self._has(key) is wanted]

    def _has(self, key: t.Any) -> bool:
        try:
            return key in self._items
        except TypeError:
            return False

    @property
    def remaining_capacity(self) -> int:
        return self.capacity - len(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.capacity

    @property
    def values(self) -> list[t.Any]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
