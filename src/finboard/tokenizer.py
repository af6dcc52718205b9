# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Delimited-text tokenization for FinBoard.

Uploaded files are frequently exported by spreadsheets with a locale
dependent separator, so the separator is detected from the first
non-empty line instead of being assumed.

Quoting rules
-------------
- a field starting with ``"`` is quoted; it may contain the delimiter and
  line breaks, and ``""`` inside it stands for a literal ``"``,
- whitespace around a quoted field is ignored, whitespace inside is kept,
- unquoted fields are trimmed and stray outer quotes are stripped.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Candidate delimiters in priority order (ties keep the earlier one).
CANDIDATE_DELIMITERS: tuple[str, ...] = (",", ";", "\t", "|")

DEFAULT_DELIMITER = ","


def first_nonblank_line(text: str) -> str:
    """Return the first line of ``text`` holding non-whitespace characters."""
    for line in text.splitlines():
        if line.strip():
            return line
    return ""


def split_records(text: str, delimiter: Optional[str] = None) -> list[str]:
    """
    Split text into records on line breaks that are outside quotes.

    ``\\r\\n`` and ``\\n`` are both accepted. A ``"`` opens a quoted field
    only at the start of a field (after optional whitespace), as in
    ``tokenize_line``; elsewhere it is a literal character. Line breaks
    inside a quoted field are kept as part of the record. When
    ``delimiter`` is omitted it is detected from the first non-empty line.
    """
    if delimiter is None:
        delimiter = detect_delimiter(first_nonblank_line(text))

    records: list[str] = []
    current: list[str] = []
    in_quotes = False
    field_start = True
    i = 0
    n = len(text)

    while i < n:
        char = text[i]
        if in_quotes:
            current.append(char)
            if char == '"':
                if i + 1 < n and text[i + 1] == '"':
                    current.append('"')
                    i += 1
                else:
                    in_quotes = False
        elif char in "\r\n":
            records.append("".join(current))
            current = []
            field_start = True
            if char == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
        else:
            current.append(char)
            if char == delimiter:
                field_start = True
            elif char == '"' and field_start:
                in_quotes = True
                field_start = False
            elif not char.isspace():
                field_start = False
        i += 1

    if current:
        records.append("".join(current))

    return records


def _finish_field(chars: list[str], quoted: bool) -> str:
    value = "".join(chars)
    if quoted:
        return value
    value = value.strip()
    if value[:1] in ("'", '"'):
        value = value[1:]
    if value[-1:] in ("'", '"'):
        value = value[:-1]
    return value


def tokenize_line(line: str, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    """
    Split one record into its fields.

    Returns an empty list for an empty or blank line, which callers skip.
    """
    if not line or not line.strip():
        return []

    fields: list[str] = []
    chars: list[str] = []
    quoted = False
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        char = line[i]

        if in_quotes:
            if char == '"':
                if i + 1 < n and line[i + 1] == '"':
                    chars.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                chars.append(char)
        elif char == '"' and not "".join(chars).strip():
            # Opening quote: leading whitespace before it is dropped.
            chars = []
            quoted = True
            in_quotes = True
        elif char == delimiter:
            fields.append(_finish_field(chars, quoted))
            chars = []
            quoted = False
        elif quoted and char.isspace():
            # Whitespace between a closing quote and the delimiter.
            pass
        elif quoted:
            # Text after a closing quote: keep it, field no longer pristine.
            chars.append(char)
        elif char == '"':
            # Doubled quote inside an unquoted field collapses to one.
            if i + 1 < n and line[i + 1] == '"':
                i += 1
            chars.append('"')
        else:
            chars.append(char)
        i += 1

    fields.append(_finish_field(chars, quoted))
    return fields


def detect_delimiter(line: str) -> str:
    """
    Pick the delimiter yielding the most fields for ``line``.

    Falls back to a comma for an empty line.
    """
    if not line or not line.strip():
        return DEFAULT_DELIMITER

    best = DEFAULT_DELIMITER
    best_count = 0

    for candidate in CANDIDATE_DELIMITERS:
        count = len(tokenize_line(line, candidate))
        if count > best_count:
            best = candidate
            best_count = count

    logger.debug("Detected delimiter %r with %d columns", best, best_count)
    return best
