import logging
import time
from functools import wraps
from typing import Callable, Optional, TextIO

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str, level: int = logging.INFO, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Returns the named logger, attaching a stream handler in LOG_FORMAT the
    first time it is configured.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def log_execution_time(logger: logging.Logger, slow_ms: Optional[float] = None):
    """
    Decorator timing a model call. Durations are logged at DEBUG, or at
    WARNING once they exceed ``slow_ms``. Failures are logged with their
    traceback and re-raised.
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{func.__qualname__} failed: {e}", exc_info=True)
                raise
            elapsed_ms = (time.perf_counter() - start) * 1000
            if slow_ms is not None and elapsed_ms > slow_ms:
                logger.warning(f"{func.__qualname__} took {elapsed_ms:.1f}ms (limit {slow_ms:.0f}ms)")
            elif logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"{func.__qualname__} executed in {elapsed_ms:.1f}ms")
            return result
        return wrapper
    return decorator
