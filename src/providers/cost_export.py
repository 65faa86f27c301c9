"""
Cost export record sources.

Reads raw cost line items from exported files (JSON or CSV, e.g. Azure cost
management exports) or from in-memory payloads, and registers each source
type with the SourceFactory.
"""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any

from .base import CostRecord, RecordLoadError, RecordSource, SourceFactory

logger = logging.getLogger(__name__)

# Top-level keys that may wrap the record list in a JSON export.
JSON_RECORD_KEYS = ("records", "rows", "costs", "value", "data")


class FileExportSource(RecordSource):
    """Base class for file-backed sources configured with a 'path'."""

    def __init__(self, config: dict[str, Any] | None = None):
        config = config or {}
        if not config.get("path"):
            raise RecordLoadError("File source requires a 'path'")
        self.path = Path(config["path"])
        super().__init__(config)

    def _get_source_name(self) -> str:
        return str(self.path)

    def _read_text(self) -> str:
        encoding = self.config.get("encoding", "utf-8-sig")
        try:
            return self.path.read_text(encoding=encoding)
        except FileNotFoundError:
            raise RecordLoadError(f"Cost export not found: {self.path}", source=str(self.path))
        except (OSError, UnicodeDecodeError) as e:
            raise RecordLoadError(
                f"Could not read cost export {self.path}: {e}", source=str(self.path)
            )


class JsonExportSource(FileExportSource):
    """Reads a JSON list of records, or an object wrapping one."""

    def read_raw(self) -> list[dict[str, Any]]:
        try:
            payload = json.loads(self._read_text())
        except json.JSONDecodeError as e:
            raise RecordLoadError(f"Invalid JSON in {self.path}: {e}", source=str(self.path))
        return extract_record_list(payload, source=str(self.path))


class CsvExportSource(FileExportSource):
    """Reads a CSV export with a header row."""

    def read_raw(self) -> list[dict[str, Any]]:
        return parse_csv_content(self._read_text(), source=str(self.path))


class InMemorySource(RecordSource):
    """Wraps records that are already loaded (tests, embedding callers)."""

    def _get_source_name(self) -> str:
        return "memory"

    def read_raw(self) -> list[dict[str, Any]]:
        return extract_record_list(self.config.get("records", []), source="memory")


def extract_record_list(payload: Any, source: str | None = None) -> list[Any]:
    """Return the record list from a decoded JSON payload."""
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        for key in JSON_RECORD_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
        # A single record object
        if payload:
            return [payload]
        return []

    raise RecordLoadError(
        f"Expected a list of cost records, got {type(payload).__name__}", source=source
    )


def parse_csv_content(csv_content: str, source: str | None = None) -> list[dict[str, Any]]:
    """Parse CSV text into row dictionaries, dropping fully blank rows."""
    csv_reader = csv.DictReader(io.StringIO(csv_content))
    if not csv_reader.fieldnames:
        logger.warning(f"CSV export {source or ''} has no header row")
        return []

    rows = []
    total_rows = 0
    for row in csv_reader:
        total_rows += 1
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue
        rows.append({key: value for key, value in row.items() if key is not None})

    logger.debug(f"Parsed {total_rows} CSV rows, {len(rows)} non-empty")
    return rows


def load_cost_records(path: str | Path, source_type: str | None = None) -> list[CostRecord]:
    """
    Load cost records from an export file.

    Args:
        path: Path to a .json or .csv export
        source_type: Explicit source type, otherwise taken from the file suffix

    Returns:
        List of raw cost records
    """
    path = Path(path)
    source_type = source_type or path.suffix.lstrip(".").lower()
    if source_type not in ("json", "csv"):
        raise RecordLoadError(
            f"Unsupported cost export type '{path.suffix}' (expected .json or .csv)",
            source=str(path),
        )

    source = SourceFactory.create_source(source_type, {"path": path})
    return source.load_records()


SourceFactory.register_source("json", JsonExportSource)
SourceFactory.register_source("csv", CsvExportSource)
SourceFactory.register_source("memory", InMemorySource)
