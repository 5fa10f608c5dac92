import numpy as np
from vqpy.application.compiler import compile_query
from vqpy.domain import Car, Query
from vqpy.domain.entities import Detection, FrameResult, Match
from vqpy.presentation.visualization.opencv_visualizer import MATCH_COLOR, OTHER_COLOR, OpenCVVisualizer


def make_result():
    return FrameResult(
        frame_id=0,
        timestamp=0.0,
        matches=[Match(bindings={"car": 1}, detection_index={"car": 0})],
        detections=[
            Detection((10, 20, 40, 60), "car", 0.9, track_id=1),
            Detection((60, 20, 90, 60), "car", 0.9, track_id=2),
        ]
    )


def test_draws_matched_and_unmatched():
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    out = OpenCVVisualizer().draw(image, make_result())
    # Box edges: left edge of each rectangle, below the label
    assert tuple(out[50, 10]) == MATCH_COLOR
    assert tuple(out[50, 60]) == OTHER_COLOR


def test_hides_unmatched():
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    out = OpenCVVisualizer(show_unmatched=False).draw(image, make_result())
    assert tuple(out[50, 10]) == MATCH_COLOR
    assert tuple(out[50, 60]) == (0, 0, 0)


def test_no_result_returns_frame():
    image = np.zeros((10, 10, 3), dtype=np.uint8)
    assert OpenCVVisualizer().draw(image, None) is image


def test_untracked_match_is_highlighted(registry, scripted_detector, mock_frame):
    class ConfidentCars(Query):
        def __init__(self):
            self.car = Car()

        def frame_constraint(self):
            return self.car.score > 0.5

    registry.register("objects_in_frame", scripted_detector([[
        Detection((10, 20, 40, 60), "car", 0.9),
        Detection((60, 20, 90, 60), "car", 0.3),
    ]]))
    result = compile_query(ConfidentCars, registry)(mock_frame)

    assert result.matches[0].bindings == {"car": None}
    assert result.bound_detections(result.matches[0])["car"].bbox == (10, 20, 40, 60)

    image = np.zeros((100, 100, 3), dtype=np.uint8)
    out = OpenCVVisualizer().draw(image, result)
    assert tuple(out[50, 10]) == MATCH_COLOR
    assert tuple(out[50, 60]) == OTHER_COLOR
