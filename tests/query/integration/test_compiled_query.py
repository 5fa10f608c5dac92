import pytest
import numpy as np
from vqpy.application.compiler import QueryCompiler, compile_query
from vqpy.common.exceptions import ExecutionError
from vqpy.common.metrics import MetricsCollector
from vqpy.domain import Car, Detection, Frame, Person, Query, history, model, stateful, stateless


class PaintedCar(Car):
    @model
    def color(self, image):
        pass

    @stateful(input="center", history_len=2)
    def direction(self, centers):
        dx = centers[-1][0] - centers[-2][0]
        if dx > 0:
            return "right"
        if dx < 0:
            return "left"
        return "still"

    @stateless(input="bbox")
    def width(self, bbox):
        return bbox[2] - bbox[0]

    trail = history(3, of="center")


class FindRedCar(Query):
    def __init__(self):
        self.car = PaintedCar()

    def frame_constraint(self):
        return self.car.color == "red"

    def frame_output(self):
        return self.car.track_id


class CarsMovingRight(Query):
    def __init__(self):
        self.car = PaintedCar()

    def frame_constraint(self):
        return self.car.direction == "right"

    def frame_output(self):
        return {"id": self.car.track_id, "trail": self.car.trail}

    def video_output(self, results):
        return sorted({m.bindings["car"] for r in results for m in r.matches})


class WiderThan(Query):
    def __init__(self):
        self.a = PaintedCar()
        self.b = PaintedCar()

    def frame_constraint(self):
        return (self.a != self.b) & (self.a.width > self.b.width)

    def frame_output(self):
        return (self.a.track_id, self.b.track_id)


class PersonAndCar(Query):
    def __init__(self):
        self.person = Person()
        self.car = Car()

    def frame_constraint(self):
        return self.person.score > self.car.score


def car(x, track_id, width=10, score=0.9, label="car"):
    return Detection(bbox=(x, 10, x + width, 20), class_name=label, score=score, track_id=track_id)


def color_by_width(image):
    # Crops 20 pixels wide are red
    return "red" if image is not None and image.shape[1] == 20 else "blue"


@pytest.fixture
def bound_registry(registry):
    registry.register("color", color_by_width)
    return registry


def test_find_red_car(bound_registry, scripted_detector, frames):
    detector = scripted_detector([
        [car(0, 1, width=20), car(40, 2)],
        [car(40, 2)],
        [],
    ])
    bound_registry.register("objects_in_frame", detector)
    compiled = QueryCompiler(bound_registry).compile(FindRedCar)

    results = list(compiled.run(frames(3)))

    assert [r.frame_id for r in results] == [0, 1, 2]
    assert len(results[0].matches) == 1
    assert results[0].matches[0].bindings == {"car": 1}
    assert results[0].matches[0].output == 1
    assert results[0].detection_count == 2
    assert not results[1].matched
    assert not results[2].matched
    assert [r.frame_id for r in compiled.finish()] == [0]


def test_typed_class_filters_labels(bound_registry, scripted_detector, frames):
    detector = scripted_detector([[car(0, 1, width=20, label="truck")]])
    bound_registry.register("objects_in_frame", detector)
    compiled = compile_query(FindRedCar, bound_registry)
    result = compiled(frames(1)[0])
    assert not result.matched
    assert result.detection_count == 1


def test_stateful_direction_over_frames(bound_registry, scripted_detector, frames):
    detector = scripted_detector([
        [car(0, 1), car(50, 2)],
        [car(5, 1), car(45, 2)],
        [car(10, 1), car(45, 2)],
        [car(15, 1)],
    ])
    bound_registry.register("objects_in_frame", detector)
    compiled = QueryCompiler(bound_registry).compile(CarsMovingRight)

    results = list(compiled.run(frames(4)))

    # No direction until two observations exist
    assert not results[0].matched
    assert [m.bindings for m in results[1].matches] == [{"car": 1}]
    assert [m.bindings for m in results[2].matches] == [{"car": 1}]
    trail = results[3].matches[0].output["trail"]
    assert trail == ((10.0, 15.0), (15.0, 15.0), (20.0, 15.0))
    assert compiled.finish() == [1]


def test_history_is_recorded_for_non_matching_objects(bound_registry, scripted_detector, frames):
    detector = scripted_detector([[car(50, 2)], [car(40, 2)]])
    bound_registry.register("objects_in_frame", detector)
    compiled = compile_query(CarsMovingRight, bound_registry)
    list(compiled.run(frames(2)))
    assert compiled.history.get((PaintedCar.history_name(), 2), "center") == ((55.0, 15.0), (45.0, 15.0))


def test_multi_variable_bindings_use_distinct_objects(bound_registry, scripted_detector, frames):
    detector = scripted_detector([[car(0, 1, width=30), car(40, 2, width=10), car(60, 3, width=20)]])
    bound_registry.register("objects_in_frame", detector)
    compiled = compile_query(WiderThan, bound_registry)

    result = compiled(frames(1)[0])

    outputs = sorted(m.output for m in result.matches)
    assert outputs == [(1, 2), (1, 3), (3, 2)]


def test_variables_of_different_classes(registry, scripted_detector, frames):
    detector = scripted_detector([[
        Detection((0, 0, 5, 5), "person", 0.95, track_id=1),
        Detection((10, 10, 20, 20), "car", 0.6, track_id=2),
        Detection((30, 30, 40, 40), "car", 0.99, track_id=3),
    ]])
    registry.register("objects_in_frame", detector)
    result = compile_query(PersonAndCar, registry)(frames(1)[0])
    assert [m.bindings for m in result.matches] == [{"person": 1, "car": 2}]
    assert result.matches[0].output is None


def test_model_failure_is_wrapped(bound_registry, scripted_detector, frames):
    def broken_color(image):
        raise RuntimeError("model crashed")

    bound_registry.register("color", broken_color)
    bound_registry.register("objects_in_frame", scripted_detector([[], [car(0, 1)]]))
    compiled = compile_query(FindRedCar, bound_registry)

    compiled(frames(2)[0])
    with pytest.raises(ExecutionError) as excinfo:
        compiled(frames(2)[1])

    assert excinfo.value.frame_id == 1
    assert excinfo.value.function == "color"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_metrics_record_model_timings(bound_registry, scripted_detector, frames):
    bound_registry.register("objects_in_frame", scripted_detector([[car(0, 1, width=20)]]))
    metrics = MetricsCollector()
    compiled = compile_query(FindRedCar, bound_registry, metrics_collector=metrics)
    compiled(frames(1)[0])
    averages = metrics.get_metrics().avg_model_time_ms
    assert {"objects_in_frame", "classify", "color"} <= set(averages)


def test_reset_clears_history_and_matches(bound_registry, scripted_detector, frames):
    bound_registry.register("objects_in_frame", scripted_detector([[car(0, 1)], [car(5, 1)]]))
    compiled = compile_query(CarsMovingRight, bound_registry)
    list(compiled.run(frames(2)))
    assert compiled.finish() == [1]

    compiled.reset()
    assert len(compiled.history) == 0
    assert compiled.finish() == []


def test_explain(bound_registry, scripted_detector):
    bound_registry.register("objects_in_frame", scripted_detector([]))
    compiled = compile_query(CarsMovingRight, bound_registry)
    text = compiled.explain()
    assert text.startswith("query CarsMovingRight")
    assert "trail <- history(center, length=3)" in text
    assert compiled.name == "CarsMovingRight"


def test_frame_image_is_passed_to_detector(bound_registry):
    seen = []

    def detector(image):
        seen.append(image)
        return []

    bound_registry.register("objects_in_frame", detector)
    image = np.zeros((10, 10, 3), dtype=np.uint8)
    compile_query(FindRedCar, bound_registry)(Frame(id=0, timestamp=0.0, image=image))
    assert seen[0] is image
