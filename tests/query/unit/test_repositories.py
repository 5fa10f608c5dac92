import csv
import json
import pytest
from vqpy.domain.entities import Detection, FrameResult, Match
from vqpy.infrastructure.repositories import (
    CSVResultRepository, JSONLinesResultRepository, create_repository
)


@pytest.fixture
def result():
    return FrameResult(
        frame_id=12,
        timestamp=0.4,
        matches=[
            Match(bindings={"car": 3}, output=(3, (0.0, 0.0, 10.0, 10.0))),
            Match(bindings={"car": 5}, output=None),
        ]
    )


def test_csv_repository_writes_one_row_per_match(tmp_path, result):
    repository = CSVResultRepository(str(tmp_path))
    repository.save("FindRedCar", result)
    repository.save("FindRedCar", result)
    repository.close()

    with open(tmp_path / "FindRedCar_results.csv", newline='') as f:
        rows = list(csv.reader(f))

    assert rows[0] == CSVResultRepository.HEADER
    assert len(rows) == 5
    assert rows[1][:4] == ["FindRedCar", "12", "0.400", "0"]
    assert json.loads(rows[1][4]) == {"car": 3}
    assert json.loads(rows[1][5]) == [3, [0.0, 0.0, 10.0, 10.0]]
    assert json.loads(rows[2][5]) is None


def test_jsonl_repository_writes_one_line_per_frame(tmp_path, result):
    repository = JSONLinesResultRepository(str(tmp_path))
    repository.save("FindRedCar", result)
    repository.close()

    lines = (tmp_path / "FindRedCar_results.jsonl").read_text().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["frame_id"] == 12
    assert [m["bindings"] for m in record["matches"]] == [{"car": 3}, {"car": 5}]


def test_non_json_outputs_are_stringified(tmp_path):
    repository = JSONLinesResultRepository(str(tmp_path))
    repository.save("Q", FrameResult(0, 0.0, matches=[Match({"x": 1}, output=object())]))
    repository.close()
    record = json.loads((tmp_path / "Q_results.jsonl").read_text())
    assert record["matches"][0]["output"].startswith("<object")


def test_create_repository(tmp_path):
    assert isinstance(create_repository("csv", str(tmp_path)), CSVResultRepository)
    assert isinstance(create_repository("jsonl", str(tmp_path)), JSONLinesResultRepository)
    with pytest.raises(ValueError):
        create_repository("sqlite", str(tmp_path))


def test_matched_objects_are_saved_with_their_boxes(tmp_path):
    detections = [
        Detection((0, 0, 10, 10), "car", 0.5),
        Detection((20, 30, 60, 70), "car", 0.75),
    ]
    result = FrameResult(
        frame_id=3,
        timestamp=0.1,
        matches=[Match(bindings={"car": None}, output=None, detection_index={"car": 1})],
        detections=detections
    )
    csv_repository = CSVResultRepository(str(tmp_path))
    csv_repository.save("Untracked", result)
    csv_repository.close()
    jsonl_repository = JSONLinesResultRepository(str(tmp_path))
    jsonl_repository.save("Untracked", result)
    jsonl_repository.close()

    expected = {"car": {"track_id": None, "class_name": "car", "score": 0.75, "bbox": [20, 30, 60, 70]}}
    with open(tmp_path / "Untracked_results.csv", newline='') as f:
        row = list(csv.reader(f))[1]
    assert json.loads(row[6]) == expected
    record = json.loads((tmp_path / "Untracked_results.jsonl").read_text())
    assert record["matches"][0]["objects"] == expected
