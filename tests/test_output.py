"""Tests for the output writer."""

import csv
import io
import json

import pytest

from pagesnap_core.models import ScrapingError, ScrapingResult
from pagesnap_core.output import OutputWriter
from pagesnap_core.schema import OutputTarget


def make_result(data=None):
    data = data if data is not None else [
        {"title": "A, B", "tags": ["x", "y"], "price": 3},
        {"title": "C", "price": 4, "extra": 1},
    ]
    return ScrapingResult(
        url="https://shop.example",
        data=data,
        page_count=2,
        item_count=len(data),
        duration_ms=1234,
        errors=[ScrapingError(type="navigation", message="boom", url="https://shop.example/2")],
    )


class TestOutputWriter:
    """JSON, JSONL and CSV output."""

    def test_json_has_data_and_metadata(self, tmp_path):
        """The whole result, camelCase metadata included."""
        path = OutputWriter(OutputTarget(directory=str(tmp_path), filename="run", format="json")).write(make_result())
        assert path == tmp_path / "run.json"
        out = json.loads(path.read_text(encoding="utf-8"))
        assert out["url"] == "https://shop.example"
        assert len(out["data"]) == 2
        assert out["metadata"]["pageCount"] == 2
        assert out["metadata"]["itemCount"] == 2
        assert out["metadata"]["duration"] == 1234
        assert out["metadata"]["errors"][0]["type"] == "navigation"

    def test_jsonl_one_record_per_line(self, tmp_path):
        """Only the records, one JSON document per line."""
        path = OutputWriter(OutputTarget(directory=str(tmp_path), filename="run", format="jsonl")).write(make_result())
        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["title"] for line in lines] == ["A, B", "C"]

    def test_csv_header_from_first_record(self, tmp_path):
        """Header from the first record's keys, nested values JSON-encoded."""
        path = OutputWriter(OutputTarget(directory=str(tmp_path), filename="run", format="csv")).write(make_result())
        rows = list(csv.reader(io.StringIO(path.read_text(encoding="utf-8"), newline="")))
        assert rows[0] == ["title", "tags", "price"]
        assert rows[1] == ["A, B", '["x", "y"]', "3"]
        assert rows[2] == ["C", "", "4"]

    def test_csv_empty_result(self, tmp_path):
        """No records, empty file."""
        path = OutputWriter(OutputTarget(directory=str(tmp_path), format="csv")).write(make_result([]))
        assert path.read_text(encoding="utf-8") == ""

    def test_default_name_and_format(self, tmp_path):
        """scrape_<ms>.<default format> in the default directory."""
        writer = OutputWriter(None, default_dir=tmp_path / "data", default_format="jsonl")
        path = writer.write(make_result())
        assert path.parent == tmp_path / "data"
        assert path.name.startswith("scrape_")
        assert path.suffix == ".jsonl"
        assert path.stem[len("scrape_"):].isdigit()

    def test_unknown_format(self, tmp_path):
        """Formats outside json/jsonl/csv are rejected."""
        with pytest.raises(ValueError):
            OutputWriter(OutputTarget(directory=str(tmp_path), format="xml"))
