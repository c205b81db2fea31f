import typing as t

import pytest

from tests.mocks.fetchers import RecordingFetcher, map_by_id


@pytest.fixture
def fetcher() -> RecordingFetcher:
    """Create an async fetch double answering one record per key."""
    return RecordingFetcher()


@pytest.fixture
def fast_options(fetcher: RecordingFetcher) -> dict[str, t.Any]:
    """
    Build batcher options with the shortest allowed windows.

    Returns
    -------
    dict[str, typing.Any]
        Raw options accepted by ``AutoBatcher`` and ``SingleBatch``.
    """
    return {
        "fetch_function": fetcher,
        "mapping_function": map_by_id,
        "debounce_window_ms": 50,
        "max_fetch_time_ms": 500,
    }
