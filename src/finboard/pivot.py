# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Pivot of row-aligned matrices.

Input: rows where the first column holds metric names and every other
column is a period. Output: one row per period, one column per metric::

    Metric,2021,2022          period,revenue,cogs
    Revenue,100,120     ->    2021,100.0,40.0
    COGS,40,45                2022,120.0,45.0

Metric labels are normalized into column keys with
``normalize_column_name``. Numeric cells are coerced; non-numeric,
non-blank cells are kept as text. A period producing no value at all is
dropped.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .columns import coerce_number, normalize_column_name
from .dataset import ROW_ALIGNED, Dataset, PivotMeta

logger = logging.getLogger(__name__)

PERIOD_COLUMN = "period"


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def pivot_attribute_rows(
    headers: Sequence[str],
    rows: Sequence[Mapping[str, Any]],
) -> Dataset:
    """
    Turn a metric-rows/period-columns matrix into a period-rows dataset.

    Raises:
        ValueError: if there are fewer than two headers (nothing to pivot).
    """
    if len(headers) < 2:
        raise ValueError("A pivot needs an attribute column and period columns.")

    attribute_column = headers[0]
    period_headers = tuple(headers[1:])
    labels: dict[str, str] = {}

    records: list[dict[str, Any]] = []
    for period in period_headers:
        record: dict[str, Any] = {PERIOD_COLUMN: period}
        has_value = False

        for index, row in enumerate(rows):
            label = row.get(attribute_column)
            if _is_blank(label):
                continue

            key = normalize_column_name(str(label)) or f"attribute_{index}"
            if key == PERIOD_COLUMN:
                key = f"{PERIOD_COLUMN}_{index}"
            labels.setdefault(key, str(label))

            raw = row.get(period)
            if _is_blank(raw):
                continue

            number = coerce_number(raw)
            record[key] = number if number is not None else raw
            has_value = True

        if has_value:
            records.append(record)

    out_headers = [PERIOD_COLUMN, *labels.keys()]
    logger.info(
        "Pivoted %d metric rows into %d periods x %d attributes",
        len(rows),
        len(records),
        len(labels),
    )

    return Dataset.from_records(
        out_headers,
        records,
        orientation=ROW_ALIGNED,
        pivot_meta=PivotMeta(
            attribute_column=attribute_column,
            period_headers=period_headers,
            attribute_labels=labels,
        ),
    )
