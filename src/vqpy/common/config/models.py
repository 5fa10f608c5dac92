from dataclasses import dataclass, field
from typing import Optional, Dict, Any

@dataclass
class PerformanceConfig:
    target_width: Optional[int] = None
    target_height: Optional[int] = None
    opencv_buffer_size: int = 3

@dataclass
class HistoryConfig:
    default_length: int = 30
    ttl_frames: int = 90

@dataclass
class PersistenceConfig:
    enabled: bool = False
    type: str = "csv"
    output_dir: str = "data/query_results"

@dataclass
class PipelineConfig:
    mode: str = "sync"
    frame_buffer_size: int = 10
    result_buffer_size: int = 30

@dataclass
class QueryConfig:
    source: str = ""
    source_type: str = "auto"
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    # abstract function name -> {type: yolo|bytetrack|label|color} or {_target_: ...}
    models: Dict[str, Any] = field(default_factory=dict)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    display: bool = False
