# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for FinBoard.

This module turns parsed datasets and computed KPIs into pandas DataFrames
ready for display (``to_string``) or CSV export (``to_csv``). It performs
no computation of its own: values come from the engine and the template
catalogue, display strings from ``formatting``.

The main views are:

- dataset view: the rows of a dataset in header order,
- columns view: one row per column with its numeric coverage and the
  financial family its name suggests,
- KPI view: one row per KPI with raw value, unit, formatted value and
  full-precision tooltip.
"""

from collections.abc import Sequence
from typing import Optional

import pandas as pd

from .columns import coerce_number, detect_financial_columns
from .dataset import Dataset
from .formatting import FormatOptions, format_kpi
from .kpis import KPI

KPI_COLUMNS: list[str] = [
    "id",
    "name",
    "category",
    "value",
    "unit",
    "formatted",
    "tooltip",
    "expression",
    "series_points",
    "synthetic",
]

COLUMN_SUMMARY_COLUMNS: list[str] = ["column", "values", "numeric", "family"]


def dataset_to_dataframe(
    dataset: Dataset, max_rows: Optional[int] = None
) -> pd.DataFrame:
    """Rows of ``dataset`` as a DataFrame, optionally truncated to ``max_rows``."""
    df = dataset.to_dataframe()
    if max_rows is not None:
        df = df.head(max_rows)
    return df


def dataset_summary(dataset: Dataset) -> pd.DataFrame:
    """
    One row per column of ``dataset``.

    Columns:
        - column:  header name,
        - values:  number of non-empty cells,
        - numeric: number of cells readable as numbers,
        - family:  financial family suggested by the header ("" if none).
    """
    family_by_column: dict[str, str] = {}
    for family, columns in detect_financial_columns(dataset.headers).items():
        for column in columns:
            family_by_column.setdefault(column, family)

    rows: list[dict[str, object]] = []
    for column in dataset.headers:
        values = [v for v in dataset.column_values(column) if v not in (None, "")]
        rows.append(
            {
                "column": column,
                "values": len(values),
                "numeric": sum(1 for v in values if coerce_number(v) is not None),
                "family": family_by_column.get(column, ""),
            }
        )

    return pd.DataFrame(rows, columns=COLUMN_SUMMARY_COLUMNS)


def kpis_to_dataframe(
    kpis: Sequence[KPI],
    options: FormatOptions = FormatOptions(),
) -> pd.DataFrame:
    """
    Convert a list of KPI objects into a pandas DataFrame.

    The resulting DataFrame has the following columns:
        - id, name, category: identification of the KPI,
        - value:        raw numeric value, or NaN if it could not be computed,
        - unit:         display unit ("%", "x", "₹", "days", ...),
        - formatted:    compact display string ("₹72.45 L", "N/A", ...),
        - tooltip:      full-precision string,
        - expression:   human-readable formula,
        - series_points: length of the KPI time series (0 if none),
        - synthetic:    True when the series was synthesized.

    KPIs keep their input order.
    """
    if not kpis:
        return pd.DataFrame(columns=KPI_COLUMNS)

    rows: list[dict[str, object]] = []
    for k in kpis:
        display = format_kpi(k.value, k.unit, options)
        series = k.time_series
        rows.append(
            {
                "id": k.id,
                "name": k.name,
                "category": k.category,
                "value": float("nan") if k.value is None else k.value,
                "unit": k.unit,
                "formatted": display.formatted,
                "tooltip": display.tooltip,
                "expression": k.expression or "",
                "series_points": len(series) if series is not None else 0,
                "synthetic": bool(series is not None and series.synthetic),
            }
        )

    return pd.DataFrame(rows, columns=KPI_COLUMNS)
