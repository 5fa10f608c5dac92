from .sync_pipeline import QueryPipeline
from .async_pipeline import AsyncQueryPipeline
