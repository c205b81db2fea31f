from __future__ import annotations

import typing as t

import structlog

from autobatch.batching.single import SingleBatch
from autobatch.exceptions import PushRejectedError
from autobatch.models import BatchOptions, PushErrorReason
from autobatch.status import BatchState, Membership

log = structlog.get_logger(__name__)


class Batches:
    """
    Ordered registry of the unsettled batches of one batcher.

    Batches are appended as they are created and released once settled:
    callers still waiting on a settled batch hold its ``BatchResult``
    themselves, and a settled batch never takes new keys or joins.

    Parameters
    ----------
    options : BatchOptions
        Validated options shared by every batch. ``initial_items`` only seed
        the first batch the registry creates.
    """

    def __init__(self, options: BatchOptions) -> None:
        self._options = options
        self._spill_options = options.model_copy(update={"initial_items": []})
        self._batches: list[SingleBatch] = []
        self._seeded = False

    @property
    def batches(self) -> list[SingleBatch]:
        return list(self._batches)

    @property
    def latest(self) -> SingleBatch:
        """Return the newest batch, creating one when none is left."""
        self._release_settled()
        if not self._batches:
            return self.create()
        return self._batches[-1]

    def create(self) -> SingleBatch:
        self._release_settled()
        options = self._spill_options if self._seeded else self._options
        self._seeded = True
        batch = SingleBatch(options)
        self._batches.append(batch)
        log.debug(
            event="Registered batch",
            batch_id=batch.batch_id,
            batch_count=len(self._batches),
        )
        return batch

    def find_in_flight(self, keys: list[t.Any]) -> dict[t.Any, SingleBatch]:
        """
        Map requested keys to the unsettled batch already holding them.

        Batches are scanned oldest to newest; a key held by several batches is
        attached to the oldest one.

        Parameters
        ----------
        keys : list[typing.Any]
            Unique, validated keys.

        Returns
        -------
        dict[typing.Any, SingleBatch]
            Key to batch for every key that is already spoken for.
        """
        self._release_settled()
        in_flight: dict[t.Any, SingleBatch] = {}
        for batch in self._batches:
            if batch.state is BatchState.SETTLED:
                continue
            for key in batch.contains(keys, membership=Membership.PRESENT):
                in_flight.setdefault(key, batch)
        return in_flight

    def push_or_spill(self, keys: list[t.Any]) -> list[SingleBatch]:
        """
        Place keys into the latest batch, spilling overflow into new batches.

        A batch that stopped accepting or filled up since it was selected
        raises a ``PushRejectedError``; a new batch is then opened and the
        same keys are retried there.

        Parameters
        ----------
        keys : list[typing.Any]
            Unique, validated keys not held by any unsettled batch.

        Returns
        -------
        list[SingleBatch]
            Batches that received at least one of the keys, in placement order.
        """
        batch = self.latest
        placed: list[SingleBatch] = []
        remaining = list(keys)

        while remaining:
            try:
                errors = batch.push_items(remaining)
            except PushRejectedError as error:
                log.debug(
                    event="Batch rejected push, opening a new batch",
                    batch_id=batch.batch_id,
                    error=str(object=error),
                    key_count=len(remaining),
                )
                batch = self.create()
                continue

            if batch.contains(remaining, membership=Membership.PRESENT) and batch not in placed:
                placed.append(batch)

            remaining = [
                error.key for error in errors if error.reason is PushErrorReason.CAPACITY_EXCEEDED
            ]
            if remaining:
                log.debug(
                    event="Spilling keys into a new batch",
                    from_batch_id=batch.batch_id,
                    spilled_count=len(remaining),
                )
                batch = self.create()

        return placed

    def _release_settled(self) -> None:
        settled = [batch for batch in self._batches if batch.state is BatchState.SETTLED]
        if not settled:
            return
        self._batches = [batch for batch in self._batches if batch.state is not BatchState.SETTLED]
        log.debug(
            event="Released settled batches",
            released_count=len(settled),
            batch_count=len(self._batches),
        )

    def __len__(self) -> int:
        return len(self._batches)
