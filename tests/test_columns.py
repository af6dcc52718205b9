import math

import pytest

from finboard.columns import (
    coerce_number,
    detect_financial_columns,
    find_column,
    normalize_column_name,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("100", 100.0),
        ("₹2,000", 2000.0),
        ("$ 1,234.50", 1234.5),
        ("€-12.5", -12.5),
        ("(1,200)", -1200.0),
        ("1.5e3", 1500.0),
        (".75", 0.75),
        (42, 42),
        (3.5, 3.5),
    ],
)
def test_coerce_number_accepts_numeric_text(raw: object, expected: float) -> None:
    assert coerce_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize(
    "raw",
    [None, "", "   ", "abc", "12abc", "N/A", "nan", "inf", "1_000", True, [1]],
)
def test_coerce_number_rejects_non_numbers(raw: object) -> None:
    assert coerce_number(raw) is None


def test_coerce_number_rejects_non_finite_floats() -> None:
    assert coerce_number(math.nan) is None
    assert coerce_number(math.inf) is None


def test_normalize_column_name() -> None:
    assert normalize_column_name("  Net Income (INR) ") == "net_income_inr"
    assert normalize_column_name("COGS") == "cogs"
    assert normalize_column_name("Total--Revenue") == "total_revenue"
    assert normalize_column_name("%%") == ""


def test_find_column_tries_aliases_in_order() -> None:
    headers = ["Date", "Total Sales", "Net Profit"]

    assert find_column(headers, ["revenue", "total_sales"]) == "Total Sales"
    assert find_column(headers, ["net_income", "net_profit"]) == "Net Profit"
    assert find_column(headers, ["ebitda"]) is None


def test_detect_financial_columns_groups_headers() -> None:
    detected = detect_financial_columns(["Month", "Revenue", "COGS", "Cash"])

    assert detected["revenue"] == ["Revenue"]
    assert detected["cost"] == ["COGS"]
    assert detected["cash_flow"] == ["Cash"]
    assert detected["date"] == ["Month"]
    assert detected["equity"] == []
