from finboard.dataset import COLUMN_ALIGNED, ROW_ALIGNED
from finboard.orientation import (
    DEFAULT_RULES,
    OrientationRule,
    OrientationThresholds,
    classify_orientation,
    is_date_header,
)


def _rows(headers: list[str], values: list[list[str]]) -> list[dict[str, str]]:
    return [dict(zip(headers, v)) for v in values]


def test_metric_rows_with_year_headers_are_row_aligned() -> None:
    headers = ["Metric", "2021", "2022", "2023"]
    rows = _rows(
        headers, [["Revenue", "100", "120", "150"], ["COGS", "40", "45", "50"]]
    )

    decision = classify_orientation(headers, rows)

    assert decision.orientation == ROW_ALIGNED
    assert decision.needs_pivot
    assert decision.signals["attribute_header"] is True
    assert decision.signals["date_headers"] is True


def test_metric_rows_detected_without_attribute_header() -> None:
    headers = ["Line", "Jan 2024", "Feb 2024", "Mar 2024"]
    rows = _rows(
        headers,
        [
            ["Revenue", "10", "11", "12"],
            ["Net Income", "2", "2", "3"],
            ["Headcount", "5", "5", "6"],
        ],
    )

    decision = classify_orientation(headers, rows)

    assert decision.signals["attribute_header"] is False
    assert decision.signals["metric_rows"] is True
    assert decision.orientation == ROW_ALIGNED


def test_regular_table_is_column_aligned() -> None:
    headers = ["Date", "Revenue", "Cost"]
    rows = _rows(headers, [["2024-01-01", "100", "60"], ["2024-01-02", "90", "50"]])

    decision = classify_orientation(headers, rows)

    assert decision.orientation == COLUMN_ALIGNED
    assert not decision.needs_pivot


def test_attribute_header_without_date_headers_is_column_aligned() -> None:
    headers = ["Account", "Debit", "Credit"]
    rows = _rows(headers, [["Revenue", "0", "100"], ["Cash", "100", "0"]])

    assert classify_orientation(headers, rows).orientation == COLUMN_ALIGNED


def test_empty_input_is_column_aligned() -> None:
    assert classify_orientation([], []).orientation == COLUMN_ALIGNED
    assert classify_orientation(["Metric", "2021"], []).orientation == COLUMN_ALIGNED


def test_is_date_header_patterns() -> None:
    for header in ["2024", "2024-03", "2024_03_31", "Mar-24", "march", "3/31/2024"]:
        assert is_date_header(header), header
    for header in ["Revenue", "Q1", "FY", ""]:
        assert not is_date_header(header), header


def test_date_header_ratio_threshold_is_configurable() -> None:
    headers = ["Metric", "2021", "Notes", "Source", "Owner"]
    rows = _rows(headers, [["Revenue", "1", "", "", ""]])

    strict = OrientationThresholds(date_header_ratio=0.5)
    loose = OrientationThresholds(date_header_ratio=0.25)

    assert classify_orientation(headers, rows, strict).orientation == COLUMN_ALIGNED
    assert classify_orientation(headers, rows, loose).orientation == ROW_ALIGNED


def test_ruleset_can_be_extended() -> None:
    """A caller-supplied rule participates in the decision through its signal."""
    never_dates = OrientationRule("never", "dates", 0, lambda sample: False)
    rules = tuple(r for r in DEFAULT_RULES if r.signal != "dates") + (never_dates,)

    headers = ["Metric", "2021", "2022"]
    rows = _rows(headers, [["Revenue", "1", "2"]])

    decision = classify_orientation(headers, rows, rules=rules)

    assert decision.orientation == COLUMN_ALIGNED
    assert decision.signals == {
        "never": False,
        "attribute_header": True,
        "metric_rows": True,
    }
