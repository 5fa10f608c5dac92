import pytest
from unittest.mock import Mock
from vqpy.application.registry import (
    CallableFactory, LazyFactory, ModelRegistry, as_callable, default_registry, register_model
)
from vqpy.common.exceptions import ModelResolutionError
from vqpy.domain.entities import Detection
from vqpy.infrastructure.classification import LabelClassifier


class FakeDetector:
    def detect(self, image):
        return ["detected"]


class FakePredictor:
    def __init__(self, label="red"):
        self.label = label

    def predict(self, image):
        return self.label


def test_register_and_resolve_function():
    registry = ModelRegistry()
    registry.register("color", lambda image: "red")
    assert registry.resolve("color")(None) == "red"
    assert "color" in registry
    assert registry.names() == ["color"]


def test_resolve_adapts_model_objects():
    registry = ModelRegistry()
    registry.register("objects_in_frame", FakeDetector())
    registry.register("plate", FakePredictor("ABC123"))
    assert registry.resolve("objects_in_frame")(None) == ["detected"]
    assert registry.resolve("plate")(None) == "ABC123"


def test_resolve_unknown_raises():
    with pytest.raises(ModelResolutionError, match="color"):
        ModelRegistry().resolve("color")


def test_as_callable_rejects_plain_objects():
    with pytest.raises(ModelResolutionError):
        as_callable("color", object())


def test_unregister():
    registry = ModelRegistry().register("color", lambda image: "red")
    registry.unregister("color")
    assert "color" not in registry


def test_lazy_factory_builds_once():
    builder = Mock(return_value=FakePredictor())
    registry = ModelRegistry()
    registry.register("color", LazyFactory("color", builder, label="blue"))
    builder.assert_not_called()

    registry.resolve("color")
    registry.resolve("color")
    builder.assert_called_once_with(label="blue")


def test_callable_factory_can_handle():
    factory = CallableFactory("color", FakePredictor())
    assert factory.can_handle("color")
    assert not factory.can_handle("plate")


def test_copy_is_independent():
    registry = ModelRegistry().register("color", lambda image: "red")
    clone = registry.copy()
    clone.register("plate", lambda image: "XYZ")
    assert "plate" not in registry
    assert "color" in clone


def test_register_model_decorator():
    registry = ModelRegistry()

    @register_model("color", registry=registry)
    def dominant(image):
        return "green"

    @register_model(registry=registry)
    class plate_reader(FakePredictor):
        pass

    assert registry.resolve("color")(None) == "green"
    assert registry.resolve("plate_reader")(None) == "red"


def test_default_registry_binds_classify():
    classify = default_registry().resolve("classify")
    detection = Detection(bbox=(0, 0, 1, 1), class_name="car", score=0.9)
    assert classify(detection) == "car"


def test_label_classifier_aliases():
    classifier = LabelClassifier(aliases={"automobile": "car"})
    assert classifier.classify(Detection((0, 0, 1, 1), "automobile", 0.5)) == "car"
    assert classifier.classify(Detection((0, 0, 1, 1), "truck", 0.5)) == "truck"


class DetectAndTrack:
    def detect(self, image):
        return "detect"

    def track(self, detections):
        return "track"

    def predict(self, image):
        return "predict"


@pytest.mark.parametrize("name, expected", [
    ("objects_in_frame", "detect"),
    ("track", "track"),
    ("color", "predict"),
])
def test_entry_point_follows_abstract_function(name, expected):
    registry = ModelRegistry().register(name, DetectAndTrack())
    assert registry.resolve(name)(None) == expected


def test_callable_model_without_entry_point():
    class Plate:
        def detect(self, image):
            return "detect"

        def __call__(self, image):
            return "ABC123"

    assert as_callable("plate", Plate())(None) == "ABC123"
