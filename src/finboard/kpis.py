# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
KPI model for FinBoard.

A ``KPIDefinition`` is what a user configures on the dashboard: a name,
an operation and one or two ``ColumnRef`` pointing into imported files.
``build_kpi`` derives a ``KPI`` from a definition and the datasets of the
referenced files. KPIs are recomputed whenever a backing dataset or a
column mapping changes; nothing here is cached.

Persistence is handled by the host application. Its outcome is recorded
explicitly on the KPI through ``StorageState``: a freshly built KPI is
``PENDING`` until the host confirms it was stored and calls
``mark_stored()``. A host that could not persist a KPI simply keeps it
``PENDING``, which callers can observe and surface.
"""

import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Optional

from .columns import ColumnRef
from .dataset import Dataset
from .engine import (
    DEFAULT_VALUE_DECIMALS,
    aggregate_column,
    build_expression,
    default_unit,
)
from .timeseries import TimeSeries, generate_time_series

logger = logging.getLogger(__name__)

CUSTOM_CATEGORY = "Custom"


class StorageState(enum.Enum):
    STORED = "stored"
    PENDING = "pending"


@dataclass(frozen=True)
class KPIDefinition:
    """
    User-defined KPI.

    Attributes:
        id: Stable identifier.
        name: Display name.
        operation: Aggregation (see ``engine.OPERATIONS``).
        column_a: Main column.
        column_b: Second column, for ``ratio`` and ``percent``.
        unit: Display unit; empty means "derive from the operation".
        category: Dashboard grouping.
        expression: Display formula; generated when omitted.
    """

    id: str
    name: str
    operation: str
    column_a: ColumnRef
    column_b: Optional[ColumnRef] = None
    unit: str = ""
    category: str = CUSTOM_CATEGORY
    expression: Optional[str] = None


@dataclass(frozen=True)
class KPI:
    """Computed KPI as consumed by the dashboard and report collaborators."""

    id: str
    name: str
    operation: str
    column_a: Optional[ColumnRef]
    value: Optional[float]
    unit: str
    category: str
    column_b: Optional[ColumnRef] = None
    expression: Optional[str] = None
    time_series: Optional[TimeSeries] = None
    description: str = ""
    storage: StorageState = StorageState.PENDING

    @property
    def has_value(self) -> bool:
        return self.value is not None

    def mark_stored(self) -> "KPI":
        return replace(self, storage=StorageState.STORED)

    def mark_pending(self) -> "KPI":
        return replace(self, storage=StorageState.PENDING)

    def export_fields(self) -> dict[str, object]:
        """Fields handed to report/export collaborators (no formatting)."""
        return {
            "value": self.value,
            "unit": self.unit,
            "time_series": list(self.time_series.values) if self.time_series else None,
        }


def build_kpi(
    definition: KPIDefinition,
    datasets: Mapping[str, Dataset],
    value_decimals: Optional[int] = DEFAULT_VALUE_DECIMALS,
    max_points: Optional[int] = None,
) -> KPI:
    """
    Compute a KPI from its definition.

    ``datasets`` maps source file ids to their parsed dataset. A missing
    file or column yields a KPI whose value is ``None``; this never raises
    for missing data.

    Raises:
        ValueError: if the definition uses an unknown operation.
    """
    col_a = definition.column_a
    col_b = definition.column_b

    dataset_a = datasets.get(col_a.source_file_id)
    dataset_b = datasets.get(col_b.source_file_id) if col_b is not None else None

    value: Optional[float] = None
    if dataset_a is not None:
        value = aggregate_column(
            dataset_a,
            col_a.name,
            definition.operation,
            column_b=col_b.name if col_b is not None else None,
            decimals=value_decimals,
            dataset_b=dataset_b,
        )
    else:
        logger.debug(
            "KPI %s: source file %s not loaded", definition.id, col_a.source_file_id
        )

    series = None
    if value is not None:
        series = generate_time_series(
            dataset_a, col_a.name, known_value=value, max_points=max_points
        )

    expression = definition.expression or build_expression(
        definition.operation,
        col_a.name,
        col_b.name if col_b is not None else None,
    )

    return KPI(
        id=definition.id,
        name=definition.name,
        operation=definition.operation,
        column_a=col_a,
        column_b=col_b,
        expression=expression,
        value=value,
        unit=definition.unit or default_unit(definition.operation),
        category=definition.category,
        time_series=series,
    )


def build_kpis(
    definitions: Iterable[KPIDefinition],
    datasets: Mapping[str, Dataset],
    value_decimals: Optional[int] = DEFAULT_VALUE_DECIMALS,
    max_points: Optional[int] = None,
) -> list[KPI]:
    """Build every KPI of a dashboard, in definition order."""
    return [
        build_kpi(d, datasets, value_decimals=value_decimals, max_points=max_points)
        for d in definitions
    ]


def column_refs(dataset: Dataset, source_file_id: str) -> list[ColumnRef]:
    """Column references for every header of ``dataset``."""
    return [
        ColumnRef(
            id=f"{source_file_id}:{index}",
            name=name,
            source_file_id=source_file_id,
        )
        for index, name in enumerate(dataset.headers)
    ]
