from .models import (
    PerformanceConfig,
    HistoryConfig,
    PersistenceConfig,
    PipelineConfig,
    QueryConfig,
)
from .manager import ConfigManager
