"""
structlog configuration for the ``autobatch`` loggers.

Every module logs through ``structlog.get_logger(__name__)``; nothing is
configured on import, so applications keep control of their own output
until they call ``setup_logging``.
"""

import logging
import typing as t
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

LOGGER_NAME = "autobatch"


def _shared_processors() -> list[t.Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def setup_logging(level: int = logging.WARNING, *, json_output: bool = False) -> None:
    """
    Route ``autobatch`` events through structlog.

    Parameters
    ----------
    level : int, optional
        Level applied to the ``autobatch`` standard library logger. Batch
        lifecycle events are ``DEBUG``, fetch starts ``INFO``, timeouts,
        cancellations and bad responses ``ERROR``.
    json_output : bool, optional
        Render one JSON object per event instead of colored console lines.
    """
    logging.getLogger(LOGGER_NAME).setLevel(level)
    renderer: t.Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)
    )
    structlog.configure(
        processors=[*_shared_processors(), renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def logging_context(**fields: t.Any) -> Iterator[None]:
    """
    Bind ``fields`` to every event logged inside the block.

    Fields already bound by an enclosing block keep their outer value, so a
    batcher called from another batcher's fetch function still logs under
    the outermost batcher name.
    """
    bound = structlog.contextvars.get_contextvars()
    missing = {key: value for key, value in fields.items() if key not in bound}
    if not missing:
        yield
        return
    with structlog.contextvars.bound_contextvars(**missing):
        yield
