"""
Autobatch-specific runtime exceptions.
"""

from __future__ import annotations

import typing as t


class AutoBatchError(Exception):
    """Base class for every error raised by autobatch."""


class ConfigurationError(AutoBatchError, ValueError):
    """
    Raised at construction when options are missing or out of range.

    Parameters
    ----------
    message : str
        Human readable description of the failed check.
    field : str | None, optional
        Name of the offending option, if any.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InputValidationError(AutoBatchError, ValueError):
    """Raised when a request carries no keys or malformed keys."""


class EmptyPushError(InputValidationError):
    """Raised when a push to a batch carries no keys."""


class PushRejectedError(AutoBatchError):
    """
    Hard, batch-level push rejection.

    Notes
    -----
    The orchestrator recovers from these by opening a new batch and retrying
    the same keys; they never reach ``make_request`` callers.
    """


class BatchStartedError(PushRejectedError):
    """The target batch stopped accepting keys because its fetch started."""


class BatchFullError(PushRejectedError):
    """The target batch already holds ``max_batch_size`` keys."""


class FetchTimeoutError(AutoBatchError, TimeoutError):
    """The fetch function did not settle within ``max_fetch_time_ms``."""


class FetchCancelledError(AutoBatchError):
    """The fetch function, or the task running it, was cancelled before it settled."""


class BadResponseShapeError(AutoBatchError, TypeError):
    """The fetch function returned something other than a list or tuple."""


class MissingResultError(AutoBatchError, LookupError):
    """
    The mapping function produced no entry for some requested keys.

    Parameters
    ----------
    keys : list[typing.Any]
        Requested keys left without a mapped value.
    """

    def __init__(self, keys: list[t.Any]) -> None:
        super().__init__(f"Missing results for {len(keys)} key(s): {keys!r}")
        self.keys = keys


class BatchAlreadySettledError(AutoBatchError, RuntimeError):
    """A batch result was completed or failed more than once."""
