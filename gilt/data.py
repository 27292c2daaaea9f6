"""Data file loading for Gilt.

Everything under the data directory (``_data`` by default) becomes
``site.data``: the file stem is the key, nested directories produce nested
mappings. YAML and JSON files load as structures; CSV and TSV files load as
a list of row mappings keyed by the header row.

A malformed data file never fails the build: it is skipped with a warning
and its key is simply absent.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

DATA_EXTENSIONS = (".yml", ".yaml", ".json", ".csv", ".tsv")


def parse_delimited(text: str, delimiter: str = ",") -> list[dict[str, str]]:
    """Parse CSV/TSV text into a list of row mappings.

    The header row is authoritative: an empty header cell is named
    ``column_<n>`` after its 1-based position, extra value cells are dropped
    and missing ones become empty strings.

    Args:
        text: File content.
        delimiter: Field delimiter.

    Returns:
        One dict per non-blank data row.

    Raises:
        csv.Error: If the content cannot be parsed.
    """
    reader = csv.reader(io.StringIO(text), delimiter=delimiter, strict=True)
    rows = [row for row in reader if row and any(cell.strip() for cell in row)]
    if not rows:
        return []
    header = [
        cell.strip() or f"column_{index}" for index, cell in enumerate(rows[0], start=1)
    ]
    records: list[dict[str, str]] = []
    for row in rows[1:]:
        records.append(
            {key: row[i] if i < len(row) else "" for i, key in enumerate(header)}
        )
    return records


def parse_data_file(path: Path) -> Any:
    """Parse one data file according to its extension.

    Args:
        path: Path to the data file.

    Returns:
        Parsed data, or None for unsupported extensions and empty files.

    Raises:
        ValueError, yaml.YAMLError, csv.Error, OSError: If the file is malformed
            or unreadable.
    """
    ext = path.suffix.lower()
    if ext not in DATA_EXTENSIONS:
        return None
    text = path.read_text(encoding="utf-8-sig")
    if ext in (".yml", ".yaml"):
        return yaml.safe_load(text)
    if ext == ".json":
        return json.loads(text)
    return parse_delimited(text, "\t" if ext == ".tsv" else ",")


def load_data_dir(
    data_dir: Path,
    is_excluded: Callable[[Path], bool] | None = None,
) -> dict[str, Any]:
    """Load site data from a data directory, recursing into subdirectories.

    Args:
        data_dir: Directory holding data files.
        is_excluded: Optional predicate to skip files and directories.

    Returns:
        Mapping of file stem (or directory name) to parsed data.
    """
    data: dict[str, Any] = {}
    if not data_dir.is_dir():
        return data
    for entry in sorted(data_dir.iterdir()):
        if entry.name.startswith(".") or (is_excluded and is_excluded(entry)):
            continue
        if entry.is_dir():
            nested = load_data_dir(entry, is_excluded)
            if nested:
                data[entry.name] = nested
            continue
        try:
            parsed = parse_data_file(entry)
        except (ValueError, yaml.YAMLError, csv.Error, OSError) as exc:
            print(f"Warning: Failed to parse data file {entry}: {exc}")
            continue
        if parsed is not None:
            data[entry.stem] = parsed
    return data


def merge_preserving(existing: dict[str, Any], loaded: dict[str, Any]) -> dict[str, Any]:
    """Merge file-sourced data into existing data without clobbering it.

    Keys already present keep their value untouched, including whole
    subtrees a plugin seeded before the scan.

    Args:
        existing: Data set before the scan (mutated in place).
        loaded: Data loaded from files.

    Returns:
        The ``existing`` mapping.
    """
    for key, value in loaded.items():
        existing.setdefault(key, value)
    return existing
