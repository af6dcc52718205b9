# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Column and cell helpers for FinBoard.

This module groups the small, dependency-free helpers shared by the
ingestion pipeline and the KPI layer:

- numeric coercion of raw cell values (``coerce_number``),
- normalization of column / attribute labels into stable keys
  (``normalize_column_name``),
- tolerant column lookup by alias (``find_column``),
- detection of financial column families in a header list
  (``detect_financial_columns``),
- the ``ColumnRef`` value object identifying a column of a given file.

Coercion never raises and never substitutes a sentinel number: a value
that cannot be read as a finite number becomes ``None``.
"""

import math
import numbers
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

# Currency glyphs stripped before numeric parsing.
CURRENCY_GLYPHS = "₹$€£¥"

_STRIP_RE = re.compile(rf"[{re.escape(CURRENCY_GLYPHS)},\s]")
_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_REPEATED_UNDERSCORE_RE = re.compile(r"_+")

FINANCIAL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "revenue": ("revenue", "sales", "income", "turnover"),
    "profit": ("profit", "net_income", "earnings", "pl"),
    "cost": ("cost", "expense", "cogs", "expenditure"),
    "assets": ("assets", "asset"),
    "liabilities": ("liabilities", "liability", "debt"),
    "equity": ("equity", "capital", "shareholders"),
    "cash_flow": ("cash_flow", "cash", "ocf"),
    "date": ("date", "period", "month", "quarter", "year"),
}


@dataclass(frozen=True)
class ColumnRef:
    """
    Identity of a column inside a given source file.

    Two files may share a column name, so KPIs reference columns through
    this object rather than through the display name alone.
    """

    id: str
    name: str
    source_file_id: str


def coerce_number(value: Any) -> Optional[float]:
    """
    Best-effort conversion of a raw cell value into a number.

    - finite numbers (``bool`` excluded) are returned unchanged,
    - strings have currency glyphs, thousands separators and whitespace
      removed; ``(1,200)`` is read as ``-1200``,
    - anything else, or a string that is not a plain decimal literal,
      returns ``None``.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, numbers.Real):
        return value if math.isfinite(value) else None

    if not isinstance(value, str):
        return None

    cleaned = _STRIP_RE.sub("", value)
    if not cleaned:
        return None

    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]

    if not _NUMBER_RE.match(cleaned):
        return None

    parsed = float(cleaned)
    if not math.isfinite(parsed):
        return None

    return -parsed if negative else parsed


def normalize_column_name(name: str) -> str:
    """
    Normalize a label into a key: lowercase, non-alphanumeric characters
    replaced by ``_``, repeated underscores collapsed, outer ones trimmed.

    >>> normalize_column_name("  Net Income (INR) ")
    'net_income_inr'
    """
    key = _NON_ALNUM_RE.sub("_", str(name).lower())
    key = _REPEATED_UNDERSCORE_RE.sub("_", key)
    return key.strip("_")


def _compact_key(name: str) -> str:
    return re.sub(r"[_\s-]", "", str(name).lower())


def find_column(headers: Iterable[str], aliases: Sequence[str]) -> Optional[str]:
    """
    Return the first header matching one of ``aliases``.

    Aliases are tried in order. A header matches when, ignoring case,
    spaces, dashes and underscores, it equals the alias or one contains
    the other.
    """
    header_list = [h for h in headers if _compact_key(h)]

    for alias in aliases:
        wanted = _compact_key(alias)
        if not wanted:
            continue
        for header in header_list:
            key = _compact_key(header)
            if key == wanted or wanted in key or key in wanted:
                return header

    return None


def detect_financial_columns(headers: Iterable[str]) -> dict[str, list[str]]:
    """Group headers by the financial family their normalized name suggests."""
    header_list = list(headers)
    detected: dict[str, list[str]] = {}

    for family, keywords in FINANCIAL_KEYWORDS.items():
        detected[family] = [
            h
            for h in header_list
            if any(k in normalize_column_name(h) for k in keywords)
        ]

    return detected
