# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Orientation detection for FinBoard.

Financial exports come in two shapes:

- column-aligned: one column per metric, one row per period or record
  (usable as-is),
- row-aligned: one row per metric, one column per period, e.g.::

      Metric,2021,2022,2023
      Revenue,100,120,150
      COGS,40,45,60

  which must be pivoted before KPIs can be computed.

Detection is a heuristic expressed as an ordered ruleset. Each
``OrientationRule`` has a name, a signal it contributes to, a priority and
a predicate over an ``OrientationSample``. The dataset is row-aligned when
at least one ``shape`` rule AND at least one ``dates`` rule hold. New
heuristics are added by extending the ruleset, not the control flow.

The thresholds were chosen empirically. Column-aligned data whose headers
happen to look like dates (for example a transaction log with a
``2024-01-01`` column) combined with a metric-like first column can still
be classified as row-aligned. When no rule fires the safer
``column_aligned`` answer is returned.
"""

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .dataset import COLUMN_ALIGNED, ROW_ALIGNED

logger = logging.getLogger(__name__)

SHAPE_SIGNAL = "shape"
DATES_SIGNAL = "dates"

ATTRIBUTE_HEADER_RE = re.compile(
    r"(period|metric|indicator|kpi|measure|item|account|attribute|parameter"
    r"|row|field|name)",
    re.IGNORECASE,
)

DATE_HEADER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{4}[-_]\d{2}[-_]\d{2}$"),
    re.compile(r"^\d{4}[-_]\d{2}$"),
    re.compile(r"^\d{4}$"),
    re.compile(r"^(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)", re.IGNORECASE),
    re.compile(r"^\d{1,2}[-/]\d{1,2}[-/]\d{2,4}$"),
)

FINANCIAL_METRIC_KEYWORDS: tuple[str, ...] = (
    "revenue",
    "net_income",
    "profit",
    "cogs",
    "assets",
    "liabilities",
    "equity",
    "cash",
    "debt",
    "ebitda",
    "ebit",
    "opex",
    "capex",
    "sales",
    "income",
    "expense",
)


@dataclass(frozen=True)
class OrientationThresholds:
    """Tunable thresholds of the default ruleset."""

    sample_rows: int = 10
    max_period_headers: int = 10
    date_header_ratio: float = 0.5
    metric_row_ratio: float = 0.3
    metric_row_min_matches: int = 2


@dataclass(frozen=True)
class OrientationSample:
    """What the rules look at: the headers and the first data rows."""

    headers: tuple[str, ...]
    rows: tuple[Mapping[str, Any], ...]
    thresholds: OrientationThresholds

    @property
    def first_header(self) -> str:
        return self.headers[0] if self.headers else ""

    @property
    def period_headers(self) -> tuple[str, ...]:
        return self.headers[1 : 1 + self.thresholds.max_period_headers]

    def first_column_values(self) -> list[str]:
        key = self.first_header
        return [str(row.get(key) or "").lower() for row in self.rows]


@dataclass(frozen=True)
class OrientationRule:
    name: str
    signal: str
    priority: int
    predicate: Callable[[OrientationSample], bool]


@dataclass(frozen=True)
class OrientationDecision:
    """Outcome of the classification, with every rule's result."""

    orientation: str
    signals: dict[str, bool] = field(default_factory=dict)

    @property
    def needs_pivot(self) -> bool:
        return self.orientation == ROW_ALIGNED


def is_date_header(header: str) -> bool:
    text = str(header).strip()
    return any(p.search(text) for p in DATE_HEADER_PATTERNS)


def attribute_header(sample: OrientationSample) -> bool:
    """First header names an attribute column (metric, account, ...)."""
    return bool(ATTRIBUTE_HEADER_RE.search(sample.first_header))


def metric_rows(sample: OrientationSample) -> bool:
    """First-column values look like financial metric names."""
    values = sample.first_column_values()
    if not values:
        return False

    matches = sum(
        1 for v in values if any(k in v for k in FINANCIAL_METRIC_KEYWORDS)
    )
    t = sample.thresholds
    ratio_threshold = len(values) * t.metric_row_ratio
    return matches >= t.metric_row_min_matches or matches >= ratio_threshold


def date_headers(sample: OrientationSample) -> bool:
    """Enough of the remaining headers look like dates or periods."""
    candidates = sample.period_headers
    if not candidates:
        return False

    count = sum(1 for h in candidates if is_date_header(h))
    return count >= len(candidates) * sample.thresholds.date_header_ratio


DEFAULT_RULES: tuple[OrientationRule, ...] = (
    OrientationRule("attribute_header", SHAPE_SIGNAL, 10, attribute_header),
    OrientationRule("metric_rows", SHAPE_SIGNAL, 20, metric_rows),
    OrientationRule("date_headers", DATES_SIGNAL, 10, date_headers),
)


def classify_orientation(
    headers: Sequence[str],
    rows: Sequence[Mapping[str, Any]],
    thresholds: OrientationThresholds = OrientationThresholds(),
    rules: Sequence[OrientationRule] = DEFAULT_RULES,
) -> OrientationDecision:
    """
    Decide whether a parsed table is row-aligned (needs a pivot).

    Rules are evaluated by ascending priority. The table is row-aligned
    when every signal required by the ruleset (``shape`` and ``dates``)
    has at least one rule that holds.
    """
    if not headers or not rows:
        return OrientationDecision(orientation=COLUMN_ALIGNED)

    sample = OrientationSample(
        headers=tuple(headers),
        rows=tuple(rows[: thresholds.sample_rows]),
        thresholds=thresholds,
    )

    signals: dict[str, bool] = {}
    fired: dict[str, bool] = {}
    for rule in sorted(rules, key=lambda r: r.priority):
        result = bool(rule.predicate(sample))
        signals[rule.name] = result
        fired[rule.signal] = fired.get(rule.signal, False) or result

    needs_pivot = bool(fired) and all(fired.values())
    orientation = ROW_ALIGNED if needs_pivot else COLUMN_ALIGNED

    logger.debug("Orientation signals: %s -> %s", signals, orientation)
    return OrientationDecision(orientation=orientation, signals=signals)
