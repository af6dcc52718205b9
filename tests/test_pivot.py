import pytest

from finboard.columns import coerce_number
from finboard.dataset import ROW_ALIGNED
from finboard.pivot import PERIOD_COLUMN, pivot_attribute_rows

HEADERS = ["Metric", "2021", "2022", "2023"]
ROWS = [
    {"Metric": "Revenue", "2021": "100", "2022": "120", "2023": "150"},
    {"Metric": "COGS", "2021": "40", "2022": "45", "2023": "50"},
]


def test_pivot_metric_rows_into_periods() -> None:
    dataset = pivot_attribute_rows(HEADERS, ROWS)

    assert dataset.orientation == ROW_ALIGNED
    assert dataset.headers == ("period", "revenue", "cogs")
    assert dataset.row_count == 3
    assert dataset.rows[0] == {"period": "2021", "revenue": 100.0, "cogs": 40.0}
    assert dataset.column_values(PERIOD_COLUMN) == ["2021", "2022", "2023"]


def test_pivot_preserves_every_value() -> None:
    """Each non-blank cell (row i, period j) ends up at (period j, metric i)."""
    dataset = pivot_attribute_rows(HEADERS, ROWS)

    for source in ROWS:
        key = source["Metric"].lower()
        for period in HEADERS[1:]:
            row = next(r for r in dataset.rows if r["period"] == period)
            assert row[key] == coerce_number(source[period])


def test_pivot_meta_records_the_source_shape() -> None:
    meta = pivot_attribute_rows(HEADERS, ROWS).pivot_meta

    assert meta is not None
    assert meta.attribute_column == "Metric"
    assert meta.period_headers == ("2021", "2022", "2023")
    assert meta.attribute_labels == {"revenue": "Revenue", "cogs": "COGS"}
    assert meta.attribute_count == 2


def test_pivot_keeps_text_and_skips_blank_cells() -> None:
    rows = [
        {"Metric": "Revenue", "2021": "₹1,000", "2022": ""},
        {"Metric": "Status", "2021": "audited", "2022": None},
        {"Metric": "", "2021": "999", "2022": "999"},
    ]

    dataset = pivot_attribute_rows(["Metric", "2021", "2022"], rows)

    # 2022 has no value at all and is dropped.
    assert dataset.row_count == 1
    assert dataset.rows[0] == {"period": "2021", "revenue": 1000.0, "status": "audited"}


def test_pivot_renames_colliding_and_empty_keys() -> None:
    rows = [
        {"Metric": "Period", "2021": "1"},
        {"Metric": "%%", "2021": "2"},
    ]

    dataset = pivot_attribute_rows(["Metric", "2021"], rows)

    assert dataset.headers == ("period", "period_0", "attribute_1")
    assert dataset.rows[0]["period"] == "2021"
    assert dataset.rows[0]["period_0"] == 1.0
    assert dataset.rows[0]["attribute_1"] == 2.0


def test_pivot_requires_period_columns() -> None:
    with pytest.raises(ValueError):
        pivot_attribute_rows(["Metric"], [{"Metric": "Revenue"}])
