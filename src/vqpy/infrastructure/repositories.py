import os
import csv
import json
from typing import Dict, Optional, TextIO
from ..domain import ResultRepository, FrameResult, Match


def _objects(result: FrameResult, match: Match) -> Dict[str, dict]:
    return {
        name: {
            "track_id": detection.track_id,
            "class_name": detection.class_name,
            "score": float(detection.score),
            "bbox": [float(v) for v in detection.bbox],
        }
        for name, detection in result.bound_detections(match).items()
    }


class CSVResultRepository(ResultRepository):
    """
    Saves matches to CSV, one file per query and one row per match.
    """
    HEADER = ["query", "frame_id", "timestamp", "match_index", "bindings", "output", "objects"]

    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        os.makedirs(self.output_dir, exist_ok=True)

    def _get_filename(self, query_name: str) -> str:
        return os.path.join(self.output_dir, f"{query_name}_results.csv")

    def _ensure_file_exists(self, filename: str):
        if not os.path.exists(filename):
            with open(filename, mode='w', newline='') as f:
                csv.writer(f).writerow(self.HEADER)

    def save(self, query_name: str, result: FrameResult):
        filename = self._get_filename(query_name)
        self._ensure_file_exists(filename)

        with open(filename, mode='a', newline='') as f:
            writer = csv.writer(f)
            for index, match in enumerate(result.matches):
                writer.writerow([
                    query_name,
                    result.frame_id,
                    f"{result.timestamp:.3f}",
                    index,
                    json.dumps(match.bindings, sort_keys=True),
                    json.dumps(match.output, default=str),
                    json.dumps(_objects(result, match), sort_keys=True)
                ])

    def close(self):
        pass


class JSONLinesResultRepository(ResultRepository):
    """
    Saves one JSON object per matched frame.
    """
    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        os.makedirs(self.output_dir, exist_ok=True)
        self._files: Dict[str, TextIO] = {}

    def _handle(self, query_name: str) -> TextIO:
        handle = self._files.get(query_name)
        if handle is None:
            path = os.path.join(self.output_dir, f"{query_name}_results.jsonl")
            handle = self._files[query_name] = open(path, mode='a', encoding='utf-8')
        return handle

    def save(self, query_name: str, result: FrameResult):
        record = {
            "query": query_name,
            "frame_id": result.frame_id,
            "timestamp": result.timestamp,
            "matches": [
                {"bindings": m.bindings, "output": m.output, "objects": _objects(result, m)}
                for m in result.matches
            ],
        }
        handle = self._handle(query_name)
        handle.write(json.dumps(record, default=str) + "\n")
        handle.flush()

    def close(self):
        for handle in self._files.values():
            handle.close()
        self._files.clear()


def create_repository(repo_type: str, output_dir: str) -> Optional[ResultRepository]:
    if repo_type == 'csv':
        return CSVResultRepository(output_dir=output_dir)
    if repo_type in ('jsonl', 'json'):
        return JSONLinesResultRepository(output_dir=output_dir)
    raise ValueError(f"Unknown repository type: {repo_type}")
