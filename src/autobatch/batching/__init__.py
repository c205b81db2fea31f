from autobatch.batching.autobatcher import AutoBatcher
from autobatch.batching.cached import AutoBatcherCache
from autobatch.batching.items import SingleBatchItems
from autobatch.batching.registry import Batches
from autobatch.batching.result import BatchResult
from autobatch.batching.single import SingleBatch
from autobatch.batching.timeout import BatchTimeout

__all__ = [
    "AutoBatcher",
    "AutoBatcherCache",
    "Batches",
    "BatchResult",
    "BatchTimeout",
    "SingleBatch",
    "SingleBatchItems",
]
