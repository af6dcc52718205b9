# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core aggregation engine for FinBoard.

This module computes the value of a user-defined KPI from one or two
columns of a ``Dataset``.

Operations
----------
- ``sum``     : sum of the numeric values of column A,
- ``avg``     : arithmetic mean of the numeric values of column A,
- ``min``     : smallest numeric value of column A,
- ``max``     : largest numeric value of column A,
- ``count``   : number of values of column A that could be coerced,
- ``ratio``   : sum(A) / sum(B),
- ``percent`` : (sum(A) - sum(B)) / sum(B) * 100.

Every cell goes through ``coerce_number``; values that cannot be read as
numbers are ignored rather than counted as zero.

Degenerate cases
----------------
The engine never raises to signal "no data". It returns ``None`` when:

- a referenced column does not exist in the dataset,
- column A (or B for two-column operations) has no numeric value,
- the denominator of ``ratio`` / ``percent`` sums to zero,
- the result overflows to an infinite or undefined float.

An unknown operation name is a programming error and raises ``ValueError``.

Display metadata
----------------
``build_expression`` renders the human-readable formula shown next to a
KPI (e.g. ``SUM("Revenue") / SUM("Cost")``). It is never evaluated.
"""

import logging
import math
from typing import Optional

import pandas as pd

from .columns import coerce_number
from .dataset import Dataset

logger = logging.getLogger(__name__)

SINGLE_COLUMN_OPERATIONS: tuple[str, ...] = ("sum", "avg", "min", "max", "count")
TWO_COLUMN_OPERATIONS: tuple[str, ...] = ("ratio", "percent")
OPERATIONS: tuple[str, ...] = SINGLE_COLUMN_OPERATIONS + TWO_COLUMN_OPERATIONS

# Unit used when the user did not choose one.
DEFAULT_UNITS: dict[str, str] = {"percent": "%", "ratio": "x"}

DEFAULT_VALUE_DECIMALS = 2


def numeric_series(dataset: Dataset, column: Optional[str]) -> Optional[pd.Series]:
    """
    Coerced numeric values of ``column`` in row order, nulls dropped.

    Returns ``None`` when the column does not exist.
    """
    if not column or not dataset.has_column(column):
        return None

    values = [coerce_number(v) for v in dataset.column_values(column)]
    return pd.Series([v for v in values if v is not None], dtype="float64")


def _check_operation(operation: str) -> None:
    if operation not in OPERATIONS:
        raise ValueError(
            f"Unknown KPI operation: {operation!r}. "
            f"Expected one of: {', '.join(OPERATIONS)}."
        )


def aggregate_column(
    dataset: Dataset,
    column: str,
    operation: str,
    column_b: Optional[str] = None,
    decimals: Optional[int] = DEFAULT_VALUE_DECIMALS,
    dataset_b: Optional[Dataset] = None,
) -> Optional[float]:
    """
    Compute ``operation`` over ``column`` (and ``column_b``) of ``dataset``.

    Args:
        dataset: Dataset holding column A.
        column: Name of column A.
        operation: One of ``OPERATIONS``.
        column_b: Name of column B, required by ``ratio`` and ``percent``.
        decimals: Rounding applied to the result, ``None`` to keep it as is.
        dataset_b: Dataset holding column B when it comes from another
            file. Defaults to ``dataset``.

    Returns:
        The aggregated value, or ``None`` for the degenerate cases listed
        in the module docstring.

    Raises:
        ValueError: if ``operation`` is not a known operation.
    """
    _check_operation(operation)

    values = numeric_series(dataset, column)
    if values is None or values.empty:
        return None

    result: Optional[float]
    if operation == "sum":
        result = float(values.sum())
    elif operation == "avg":
        result = float(values.mean())
    elif operation == "min":
        result = float(values.min())
    elif operation == "max":
        result = float(values.max())
    elif operation == "count":
        return int(values.count())
    else:
        values_b = numeric_series(dataset_b or dataset, column_b)
        if values_b is None or values_b.empty:
            return None

        sum_a = float(values.sum())
        sum_b = float(values_b.sum())
        if sum_b == 0:
            logger.debug("Denominator %r sums to zero", column_b)
            return None

        if operation == "ratio":
            result = sum_a / sum_b
        else:
            result = (sum_a - sum_b) / sum_b * 100

    if not math.isfinite(result):
        logger.debug("%s of %r overflows to %r", operation, column, result)
        return None

    if decimals is not None:
        result = round(result, decimals)
    return result


def build_expression(
    operation: str,
    column: str,
    column_b: Optional[str] = None,
) -> str:
    """Human-readable formula for a KPI, for display only."""
    _check_operation(operation)

    a = f'"{column}"'
    b = f'"{column_b or ""}"'
    if operation == "ratio":
        return f"SUM({a}) / SUM({b})"
    if operation == "percent":
        return f"(SUM({a}) - SUM({b})) / SUM({b}) * 100"
    return f"{operation.upper()}({a})"


def default_unit(operation: str) -> str:
    """Unit suggested for a KPI when none was configured."""
    return DEFAULT_UNITS.get(operation, "")
