# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for FinBoard.

This module turns the decoded text of an uploaded file into a normalized
``Dataset``. The file name is only used to choose how the text is parsed.

Supported inputs
----------------

1) Delimited text (``.csv``, ``.tsv``, ``.txt``)
   -----------------------------------------------
   - the separator is detected from the header line (comma, semicolon,
     tab or pipe),
   - quoted fields may contain separators, line breaks and ``""``,
   - blank lines are skipped,
   - rows with too few fields are padded with ``None``, extra fields are
     dropped; in strict mode such rows are skipped and reported as
     warnings (at most ``max_warnings`` of them),
   - row-aligned matrices (metrics in rows, periods in columns) are
     detected and pivoted (see ``orientation.py`` and ``pivot.py``).

2) Structured records (``.json``)
   -------------------------------
   A JSON array of objects, or a single object. Headers are the keys in
   first-seen order.

3) Excel workbooks are recognized but not parsed; callers get a failed
   result asking for a CSV export.

Parsing strategies
------------------
Each parser is a named ``ParseStrategy``. ``parse_file`` selects the
strategies accepting the file type and tries them in order, returning the
first successful ``ParseResult``. When every strategy fails, the errors
are combined into a single failed result.

Expected bad input never raises: the outcome is a ``ParseResult`` with
``success=False`` and a human-readable ``error``.
"""

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any, Optional

from .dataset import COLUMN_ALIGNED, Dataset, ParseResult
from .orientation import OrientationThresholds, classify_orientation
from .pivot import pivot_attribute_rows
from .tokenizer import (
    detect_delimiter,
    first_nonblank_line,
    split_records,
    tokenize_line,
)

logger = logging.getLogger(__name__)

DELIMITED_TYPES = frozenset({"csv", "tsv", "txt"})


@dataclass(frozen=True)
class ParseOptions:
    """Options shared by all parsing strategies."""

    strict_mode: bool = False
    max_warnings: int = 10
    orientation: OrientationThresholds = OrientationThresholds()


@dataclass(frozen=True)
class ParseStrategy:
    name: str
    accepts: Callable[[str], bool]
    parse: Callable[[str, ParseOptions], ParseResult]


def get_file_type(file_name: str) -> str:
    """Return the file type implied by the extension of ``file_name``."""
    ext = PurePath(str(file_name)).suffix.lower().lstrip(".")

    if ext in DELIMITED_TYPES:
        return ext
    if ext in ("xlsx", "xls"):
        return "excel"
    if ext == "json":
        return "json"
    return "unknown"


def _unique_headers(raw_headers: Sequence[str]) -> list[str]:
    """Clean header names, fill blanks and make duplicates unique."""
    headers: list[str] = []
    seen: dict[str, int] = {}

    for index, raw in enumerate(raw_headers):
        name = str(raw).replace('"', "").replace("'", "").strip()
        if not name:
            name = f"column_{index + 1}"

        if name in seen:
            base = name
            while name in seen:
                seen[base] += 1
                name = f"{base}_{seen[base]}"
        seen[name] = 1
        headers.append(name)

    return headers


def parse_csv(text: str, options: ParseOptions = ParseOptions()) -> ParseResult:
    """
    Parse delimited text into a ``Dataset``.

    Returns a failed ``ParseResult`` for empty input or when no header can
    be read.
    """
    text = text or ""
    if not text.strip():
        return ParseResult.failure("Empty file", strategy="csv")

    delimiter = detect_delimiter(first_nonblank_line(text))
    records = [r for r in split_records(text, delimiter) if r.strip()]
    source_headers = tokenize_line(records[0], delimiter)
    if not source_headers or (len(source_headers) == 1 and not source_headers[0]):
        return ParseResult.failure("No headers found in CSV", strategy="csv")

    headers = _unique_headers(source_headers)
    rows: list[dict[str, Any]] = []
    warnings: list[str] = []

    for index, record in enumerate(records[1:], start=1):
        values = tokenize_line(record, delimiter)
        if not values:
            continue

        if len(values) != len(headers) and options.strict_mode:
            if len(warnings) < options.max_warnings:
                warnings.append(
                    f"Row {index}: Column count mismatch "
                    f"(expected {len(headers)}, got {len(values)})"
                )
            continue

        rows.append(
            {
                header: values[i] if i < len(values) else None
                for i, header in enumerate(headers)
            }
        )

    decision = classify_orientation(headers, rows, options.orientation)
    if decision.needs_pivot:
        dataset = pivot_attribute_rows(headers, rows)
    else:
        dataset = Dataset.from_records(headers, rows, orientation=COLUMN_ALIGNED)

    logger.info(
        "Parsed CSV: delimiter=%r, %d source columns, %d rows, orientation=%s",
        delimiter,
        len(headers),
        dataset.row_count,
        dataset.orientation,
    )

    return ParseResult(
        success=True,
        dataset=dataset,
        warnings=tuple(warnings),
        delimiter=delimiter,
        source_headers=tuple(headers),
        strategy="csv",
    )


def _json_cell(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float)):
        return value
    return json.dumps(value)


def parse_json(text: str, options: ParseOptions = ParseOptions()) -> ParseResult:
    """Parse a JSON array of records (or a single record) into a ``Dataset``."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return ParseResult.failure("Invalid JSON format", strategy="json")

    records = data if isinstance(data, list) else [data]
    records = [r for r in records if isinstance(r, dict)]
    if not records:
        return ParseResult.failure("No records found in JSON", strategy="json")

    headers: list[str] = []
    for record in records:
        for key in record:
            if str(key) not in headers:
                headers.append(str(key))

    rows = [{str(k): _json_cell(v) for k, v in r.items()} for r in records]
    dataset = Dataset.from_records(headers, rows, orientation=COLUMN_ALIGNED)

    return ParseResult(
        success=True,
        dataset=dataset,
        source_headers=tuple(headers),
        strategy="json",
    )


def _parse_excel(text: str, options: ParseOptions) -> ParseResult:
    return ParseResult.failure(
        "Excel parsing is not supported. Please convert the file to CSV first.",
        strategy="excel",
    )


PARSE_STRATEGIES: tuple[ParseStrategy, ...] = (
    ParseStrategy("json", lambda t: t in ("json", "unknown"), parse_json),
    ParseStrategy("csv", lambda t: t in DELIMITED_TYPES or t == "unknown", parse_csv),
    ParseStrategy("excel", lambda t: t == "excel", _parse_excel),
)


def parse_file(
    file_name: str,
    content: str,
    options: ParseOptions = ParseOptions(),
    strategies: Sequence[ParseStrategy] = PARSE_STRATEGIES,
) -> ParseResult:
    """
    Parse the decoded ``content`` of ``file_name``.

    Strategies accepting the file type are tried in order; the first
    successful result wins.
    """
    file_type = get_file_type(file_name)
    failures: list[ParseResult] = []

    for strategy in strategies:
        if not strategy.accepts(file_type):
            continue

        result = strategy.parse(content, options)
        if result.success:
            return result

        logger.debug(
            "Strategy %s failed for %s: %s", strategy.name, file_name, result.error
        )
        failures.append(result)

    if not failures:
        return ParseResult.failure(f"Unsupported file type: {file_name}")
    if len(failures) == 1:
        return failures[0]
    return ParseResult.failure(
        "; ".join(f"{f.strategy}: {f.error}" for f in failures)
    )


def read_file(path: str, options: Optional[ParseOptions] = None) -> ParseResult:
    """Read a UTF-8 file from disk and parse it (CLI helper)."""
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        logger.debug("Cannot decode %s: %s", file_path, exc)
        return ParseResult.failure("File is not valid UTF-8 text")
    return parse_file(file_path.name, text, options or ParseOptions())
