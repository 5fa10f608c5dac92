class VQPyError(Exception):
    """Base exception for all VQPy errors."""
    pass

class QueryDefinitionError(VQPyError):
    """Raised when a query or video object class is malformed."""
    pass

class ModelResolutionError(VQPyError):
    """Raised when an abstract function has no concrete model bound to it."""
    pass

class ExecutionError(VQPyError):
    """Raised when a bound model fails while executing a query plan."""

    def __init__(self, message: str, frame_id: int = None, function: str = None):
        super().__init__(message)
        self.frame_id = frame_id
        self.function = function

class SourceError(VQPyError):
    """Raised when video source operations fail."""
    pass

class ConfigurationError(VQPyError):
    """Raised when configuration is invalid."""
    pass

class DetectionError(ExecutionError):
    """Raised when object detection fails."""
    pass
