# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Time series behind KPI sparklines and charts.

A series is either read from the data (row order, which for a pivoted
dataset is period order) or, when the data holds fewer than two points,
synthesized from the known KPI value. Synthesized series are presentation
sugar only and are flagged with ``synthetic=True`` so dashboards never
present them as observed trends.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from .columns import coerce_number
from .dataset import Dataset
from .pivot import PERIOD_COLUMN

SYNTHETIC_POINTS = 6
SYNTHETIC_STEP_RATIO = 0.95


@dataclass(frozen=True)
class TimeSeries:
    """Ordered numeric sequence with optional labels."""

    values: tuple[float, ...]
    synthetic: bool = False
    labels: Optional[tuple[str, ...]] = None

    def __len__(self) -> int:
        return len(self.values)

    @property
    def last(self) -> Optional[float]:
        return self.values[-1] if self.values else None


def extract_time_series(
    dataset: Dataset,
    column: str,
    max_points: Optional[int] = None,
) -> Optional[TimeSeries]:
    """
    Numeric values of ``column`` in row order, nulls dropped.

    Labels come from the ``period`` column of a pivoted dataset. Returns
    ``None`` when the column is missing or has no numeric value.
    """
    if not dataset.has_column(column):
        return None

    use_labels = dataset.is_pivoted and dataset.has_column(PERIOD_COLUMN)
    values: list[float] = []
    labels: list[str] = []

    for row in dataset.rows:
        number = coerce_number(row.get(column))
        if number is None:
            continue
        values.append(float(number))
        if use_labels:
            labels.append(str(row.get(PERIOD_COLUMN)))

    if max_points is not None:
        values = values[:max_points]
        labels = labels[:max_points]

    if not values:
        return None

    return TimeSeries(
        values=tuple(values),
        synthetic=False,
        labels=tuple(labels) if use_labels else None,
    )


def synthesize_time_series(
    value: float,
    points: int = SYNTHETIC_POINTS,
    step_ratio: float = SYNTHETIC_STEP_RATIO,
) -> TimeSeries:
    """
    Cosmetic series of ``points`` values ending exactly at ``value``.

    Walking backwards, each point is the next one times ``step_ratio``.
    """
    series: list[float] = [float(value)]
    current = float(value)
    for _ in range(points - 1):
        current *= step_ratio
        series.append(round(current, 2))

    series.reverse()
    return TimeSeries(values=tuple(series), synthetic=True)


def generate_time_series(
    dataset: Optional[Dataset],
    column: Optional[str],
    known_value: Optional[float] = None,
    max_points: Optional[int] = None,
) -> Optional[TimeSeries]:
    """
    Series for a KPI: real data when at least two points exist, otherwise
    a synthetic series ending at ``known_value`` (or at the single data
    point). Returns ``None`` when there is nothing to show.
    """
    real: Optional[TimeSeries] = None
    if dataset is not None and column:
        real = extract_time_series(dataset, column, max_points=max_points)

    if real is not None and len(real) >= 2:
        return real

    anchor = known_value
    if anchor is None and real is not None:
        anchor = real.last
    if anchor is None:
        return None

    return synthesize_time_series(anchor)


def series_from_values(values: Sequence[Optional[float]]) -> Optional[TimeSeries]:
    """Real series from already-computed values, ``None`` entries dropped."""
    kept = tuple(float(v) for v in values if v is not None)
    return TimeSeries(values=kept) if kept else None
