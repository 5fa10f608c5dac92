"""
Domain repositories for query results.
"""
from typing import Protocol
from .entities import FrameResult

class ResultRepository(Protocol):
    """
    Abstract base class for saving matched frame results.
    """
    def save(self, query_name: str, result: FrameResult):
        ...

    def close(self):
        ...
