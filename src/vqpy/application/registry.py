"""
Registry binding abstract functions to concrete models.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Union

from ..common.exceptions import ModelResolutionError

logger = logging.getLogger(__name__)

OBJECTS_IN_FRAME = "objects_in_frame"
TRACK = "track"
CLASSIFY = "classify"
RESERVED_FUNCTIONS = (OBJECTS_IN_FRAME, TRACK, CLASSIFY)

# Method called on a model object, per abstract function; user functions use predict.
_ENTRY_POINTS = {OBJECTS_IN_FRAME: "detect", TRACK: "track", CLASSIFY: "classify"}
DEFAULT_ENTRY_POINT = "predict"


def as_callable(name: str, model: Any) -> Callable:
    """
    Adapts a model object to a plain callable. The entry point is chosen by
    the abstract function it is bound to: detect for objects_in_frame, track
    for track, classify for classify and predict for anything else. Objects
    without that method are used as callables.
    """
    method = _ENTRY_POINTS.get(name, DEFAULT_ENTRY_POINT)
    entry = getattr(model, method, None)
    if entry is not None and callable(entry):
        return entry
    if callable(model):
        return model
    raise ModelResolutionError(
        f"Model bound to {name!r} is not callable and has no {method}() method"
    )


class ModelFactory(ABC):
    """
    Abstract factory for creating the model bound to an abstract function.
    """

    @abstractmethod
    def can_handle(self, name: str) -> bool:
        pass

    @abstractmethod
    def create(self, name: str, **kwargs) -> Any:
        pass


class CallableFactory(ModelFactory):
    """Binds an already constructed model (callable or object)."""

    def __init__(self, name: str, model: Any):
        self.name = name
        self.model = model

    def can_handle(self, name: str) -> bool:
        return name == self.name

    def create(self, name: str, **kwargs) -> Any:
        return self.model


class LazyFactory(ModelFactory):
    """Builds the model on first resolve and reuses it afterwards."""

    def __init__(self, name: str, builder: Callable[..., Any], **defaults):
        self.name = name
        self.builder = builder
        self.defaults = defaults
        self._instance = None

    def can_handle(self, name: str) -> bool:
        return name == self.name

    def create(self, name: str, **kwargs) -> Any:
        if self._instance is None:
            params = {**self.defaults, **kwargs}
            logger.info(f"Loading model for {name!r}")
            self._instance = self.builder(**params)
        return self._instance


class ModelRegistry:
    """
    Centralized registry of model factories, keyed by abstract function name.
    """

    def __init__(self):
        self._factories: Dict[str, ModelFactory] = {}

    def register(self, name: str, model: Union[ModelFactory, Any]) -> 'ModelRegistry':
        if not isinstance(model, ModelFactory):
            model = CallableFactory(name, model)
        if name in self._factories:
            logger.debug(f"Rebinding abstract function {name!r}")
        self._factories[name] = model
        return self

    def unregister(self, name: str):
        self._factories.pop(name, None)

    def resolve(self, name: str, **kwargs) -> Callable:
        factory = self._factories.get(name)
        if factory is None:
            factory = next(
                (f for f in self._factories.values() if f.can_handle(name)),
                None
            )
        if factory is None:
            raise ModelResolutionError(f"No model registered for abstract function {name!r}")
        return as_callable(name, factory.create(name, **kwargs))

    def names(self) -> List[str]:
        return sorted(self._factories)

    def copy(self) -> 'ModelRegistry':
        clone = ModelRegistry()
        clone._factories = dict(self._factories)
        return clone

    def __contains__(self, name: str) -> bool:
        return name in self._factories or any(
            f.can_handle(name) for f in self._factories.values()
        )


def _label_classifier():
    from ..infrastructure.classification import LabelClassifier
    return LabelClassifier()


# Setup global registry
_registry = ModelRegistry()
_registry.register(CLASSIFY, LazyFactory(CLASSIFY, _label_classifier))


def default_registry() -> ModelRegistry:
    return _registry


def register_model(name: Optional[str] = None, registry: Optional[ModelRegistry] = None):
    """
    Decorator registering a function or class as the model for an abstract
    function. Classes are instantiated lazily on first use.

        @register_model("color")
        def dominant_color(image): ...
    """
    target = registry if registry is not None else _registry

    def decorator(obj):
        key = name or obj.__name__
        if isinstance(obj, type):
            target.register(key, LazyFactory(key, obj))
        else:
            target.register(key, obj)
        return obj
    return decorator
