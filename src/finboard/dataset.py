# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Dataset model for FinBoard.

A ``Dataset`` is the normalized, immutable result of parsing one uploaded
file. It is created once per file (after an optional pivot) and consumed
by the KPI layer and the dashboard.

Invariant
---------
Every row holds exactly the keys listed in ``headers``: missing fields are
filled with ``None`` and fields that are not headers are dropped. The
``Dataset.from_records`` constructor enforces this; code building datasets
should go through it.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import pandas as pd

CellValue = Union[float, int, str, None]

COLUMN_ALIGNED = "column_aligned"
ROW_ALIGNED = "row_aligned"


@dataclass(frozen=True)
class PivotMeta:
    """
    How a row-aligned matrix was pivoted.

    Attributes:
        attribute_column: Header of the source column holding metric names.
        period_headers: Source headers that became the ``period`` values.
        attribute_labels: Normalized attribute key -> original label.
    """

    attribute_column: str
    period_headers: tuple[str, ...]
    attribute_labels: Mapping[str, str] = field(default_factory=dict)

    @property
    def attribute_count(self) -> int:
        return len(self.attribute_labels)


@dataclass(frozen=True)
class Dataset:
    """Parsed tabular data with a fixed header set."""

    headers: tuple[str, ...]
    rows: tuple[dict[str, CellValue], ...]
    orientation: str = COLUMN_ALIGNED
    pivot_meta: Optional[PivotMeta] = None

    @classmethod
    def from_records(
        cls,
        headers: Sequence[str],
        records: Iterable[Mapping[str, Any]],
        orientation: str = COLUMN_ALIGNED,
        pivot_meta: Optional[PivotMeta] = None,
    ) -> "Dataset":
        """Build a dataset, aligning every record on ``headers``."""
        header_tuple = tuple(headers)
        rows = tuple({h: record.get(h) for h in header_tuple} for record in records)
        return cls(
            headers=header_tuple,
            rows=rows,
            orientation=orientation,
            pivot_meta=pivot_meta,
        )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_pivoted(self) -> bool:
        return self.pivot_meta is not None

    def has_column(self, name: str) -> bool:
        return name in self.headers

    def column_values(self, name: str) -> list[CellValue]:
        """Raw values of column ``name`` in row order (empty if unknown)."""
        if name not in self.headers:
            return []
        return [row[name] for row in self.rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Return the rows as a DataFrame with columns in header order."""
        return pd.DataFrame(list(self.rows), columns=list(self.headers))


@dataclass(frozen=True)
class ParseResult:
    """
    Tagged result of parsing one file.

    ``success`` tells which half is meaningful: ``dataset`` on success,
    ``error`` (human-readable) on failure. Expected bad input never raises.
    """

    success: bool
    dataset: Optional[Dataset] = None
    error: Optional[str] = None
    warnings: tuple[str, ...] = ()
    delimiter: Optional[str] = None
    source_headers: tuple[str, ...] = ()
    strategy: Optional[str] = None

    @classmethod
    def failure(cls, error: str, strategy: Optional[str] = None) -> "ParseResult":
        return cls(success=False, error=error, strategy=strategy)

    @property
    def row_count(self) -> int:
        return self.dataset.row_count if self.dataset is not None else 0
