"""
Per-query runtime state shared by bound video objects and processors.
"""
import time
from typing import Any, Callable, Dict, Optional

from ..common.exceptions import ExecutionError, VQPyError
from ..common.metrics import MetricsCollector
from ..domain.history import HistoryStore


class ExecutionRuntime:
    """
    Calls bound models on behalf of the plan, timing them and wrapping
    their failures with the frame and abstract function involved.
    """

    def __init__(
        self,
        bindings: Dict[str, Callable],
        history: HistoryStore,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        self.bindings = bindings
        self.history = history
        self.metrics_collector = metrics_collector
        self.frame_id: Optional[int] = None

    def is_bound(self, name: str) -> bool:
        return name in self.bindings

    def call_model(self, name: str, *args) -> Any:
        model = self.bindings.get(name)
        if model is None:
            raise ExecutionError(
                f"Abstract function {name!r} is not bound", frame_id=self.frame_id, function=name
            )

        start = time.time()
        try:
            result = model(*args)
        except ExecutionError as e:
            if e.frame_id is None:
                e.frame_id = self.frame_id
            if e.function is None:
                e.function = name
            raise
        except VQPyError:
            raise
        except Exception as e:
            raise ExecutionError(
                f"Model {name!r} failed on frame {self.frame_id}: {e}",
                frame_id=self.frame_id,
                function=name
            ) from e

        if self.metrics_collector:
            self.metrics_collector.record_model(name, (time.time() - start) * 1000)
        return result
