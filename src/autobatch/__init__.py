from .api import BatcherContainer as BatcherContainer
from .api import batch_requester as batch_requester
from .batching.autobatcher import AutoBatcher as AutoBatcher
from .batching.cached import AutoBatcherCache as AutoBatcherCache
from .batching.single import SingleBatch as SingleBatch
from .cache import Cache as Cache
from .cache import CacheBucket as CacheBucket
from .exceptions import AutoBatchError as AutoBatchError
from .exceptions import BadResponseShapeError as BadResponseShapeError
from .exceptions import ConfigurationError as ConfigurationError
from .exceptions import FetchCancelledError as FetchCancelledError
from .exceptions import FetchTimeoutError as FetchTimeoutError
from .exceptions import InputValidationError as InputValidationError
from .exceptions import MissingResultError as MissingResultError
from .logging import setup_logging as setup_logging
from .models import BatchOptions as BatchOptions
from .models import MappedResult as MappedResult

__all__ = [
    "setup_logging",
    "batch_requester",
    "BatcherContainer",
    "AutoBatcher",
    "AutoBatcherCache",
    "SingleBatch",
    "Cache",
    "CacheBucket",
    "BatchOptions",
    "MappedResult",
    "AutoBatchError",
    "ConfigurationError",
    "InputValidationError",
    "FetchTimeoutError",
    "FetchCancelledError",
    "BadResponseShapeError",
    "MissingResultError",
]
