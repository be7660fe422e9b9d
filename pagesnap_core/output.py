import csv
import io
import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .diagnostics import get_logger
from .models import ScrapingResult
from .schema import OUTPUT_FORMATS, OutputTarget

logger = get_logger(__name__)


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False)
    return value


class OutputWriter:
    """
    Writes a ScrapingResult as JSON, JSONL or CSV.

    Usage:
        writer = OutputWriter(schema.output)
        path = writer.write(result)

    The file is ``<directory>/<filename or scrape_<ms>>.<format>``.
    """

    def __init__(
        self,
        target: Optional[OutputTarget] = None,
        default_dir: Union[str, Path] = "data",
        default_format: str = "jsonl",
    ):
        target = target or OutputTarget()
        self.format = (target.format or default_format).lower()
        if self.format not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format: {self.format}")
        self.directory = Path(target.directory) if target.directory else Path(default_dir)
        filename = target.filename or f"scrape_{int(time.time() * 1000)}"
        self.path = self.directory / f"{filename}.{self.format}"

    def write(self, result: ScrapingResult) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        if self.format == "json":
            content = self.to_json(result)
        elif self.format == "jsonl":
            content = self.to_jsonl(result.data)
        else:
            content = self.to_csv(result.data)
        self.path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote {result.item_count} item(s) to {self.path}")
        return self.path

    @staticmethod
    def to_json(result: ScrapingResult) -> str:
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str)

    @staticmethod
    def to_jsonl(records: List[Dict[str, Any]]) -> str:
        """One record per line"""
        return "".join(json.dumps(r, ensure_ascii=False, default=str) + "\n" for r in records)

    @staticmethod
    def to_csv(records: List[Dict[str, Any]]) -> str:
        """
        CSV with the header taken from the first record's keys.

        Keys missing in later records are left empty, extra keys are
        ignored, nested values are JSON-encoded.
        """
        if not records:
            return ""
        columns = list(records[0].keys())
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=columns, extrasaction='ignore', lineterminator="\r\n")
        writer.writeheader()
        for record in records:
            writer.writerow({k: _cell(record.get(k)) for k in columns})
        return output.getvalue()
