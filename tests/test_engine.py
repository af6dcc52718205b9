import pytest

from finboard.dataset import Dataset
from finboard.engine import (
    aggregate_column,
    build_expression,
    default_unit,
    numeric_series,
)


def make_dataset(columns: dict[str, list[object]]) -> Dataset:
    headers = list(columns)
    length = max(len(v) for v in columns.values())
    records = [
        {h: columns[h][i] if i < len(columns[h]) else None for h in headers}
        for i in range(length)
    ]
    return Dataset.from_records(headers, records)


def test_sum_ignores_unparseable_cells() -> None:
    dataset = make_dataset({"Revenue": ["100", "₹2,000", None, "abc"]})

    assert aggregate_column(dataset, "Revenue", "sum") == 2100


@pytest.mark.parametrize(
    ("operation", "expected"),
    [
        ("sum", 60.0),
        ("avg", 20.0),
        ("min", 10.0),
        ("max", 30.0),
        ("count", 3),
    ],
)
def test_single_column_operations(operation: str, expected: float) -> None:
    dataset = make_dataset({"Sales": ["10", "20", "30", "n/a"]})

    assert aggregate_column(dataset, "Sales", operation) == expected


def test_count_returns_an_int() -> None:
    dataset = make_dataset({"Sales": ["10", "20"]})
    assert isinstance(aggregate_column(dataset, "Sales", "count"), int)


def test_ratio_and_percent() -> None:
    dataset = make_dataset({"Revenue": ["150", "150"], "Cost": ["100", "100"]})

    assert aggregate_column(dataset, "Revenue", "ratio", "Cost") == 1.5
    assert aggregate_column(dataset, "Revenue", "percent", "Cost") == 50.0


@pytest.mark.parametrize("operation", ["ratio", "percent"])
def test_zero_denominator_returns_none(operation: str) -> None:
    dataset = make_dataset({"Revenue": ["100"], "Cost": ["0", "-0"]})

    assert aggregate_column(dataset, "Revenue", operation, "Cost") is None


def test_overflowing_results_return_none() -> None:
    dataset = make_dataset({"Big": ["1e308", "1e308"], "Tiny": ["1e-300"]})

    assert aggregate_column(dataset, "Big", "sum") is None
    assert aggregate_column(dataset, "Big", "ratio", "Tiny") is None


def test_denominator_can_come_from_another_dataset() -> None:
    sales = make_dataset({"Revenue": ["300"]})
    costs = make_dataset({"Cost": ["100", "50"]})

    assert aggregate_column(sales, "Revenue", "ratio", "Cost", dataset_b=costs) == 2.0


def test_results_are_rounded() -> None:
    dataset = make_dataset({"A": ["1"], "B": ["3"]})

    assert aggregate_column(dataset, "A", "ratio", "B") == 0.33
    assert aggregate_column(dataset, "A", "ratio", "B", decimals=4) == 0.3333
    assert aggregate_column(dataset, "A", "ratio", "B", decimals=None) == pytest.approx(
        1 / 3
    )


@pytest.mark.parametrize(
    ("columns", "column", "column_b"),
    [
        ({"Revenue": ["abc", None]}, "Revenue", None),
        ({"Revenue": ["1"]}, "Missing", None),
        ({"Revenue": ["1"]}, "Revenue", "Missing"),
        ({"Revenue": ["1"], "Cost": ["x"]}, "Revenue", "Cost"),
    ],
)
def test_degenerate_inputs_return_none(
    columns: dict[str, list[object]], column: str, column_b: str | None
) -> None:
    dataset = make_dataset(columns)
    operation = "ratio" if column_b else "sum"

    assert aggregate_column(dataset, column, operation, column_b) is None


def test_count_without_numeric_values_is_none() -> None:
    dataset = make_dataset({"Revenue": ["abc"]})
    assert aggregate_column(dataset, "Revenue", "count") is None


def test_unknown_operation_raises() -> None:
    dataset = make_dataset({"Revenue": ["1"]})

    with pytest.raises(ValueError):
        aggregate_column(dataset, "Revenue", "median")


def test_numeric_series() -> None:
    dataset = make_dataset({"Revenue": ["1", "x", 2.5]})

    series = numeric_series(dataset, "Revenue")

    assert series is not None
    assert series.tolist() == [1.0, 2.5]
    assert numeric_series(dataset, "Missing") is None


def test_build_expression() -> None:
    assert build_expression("sum", "Revenue") == 'SUM("Revenue")'
    ratio = build_expression("ratio", "Revenue", "Cost")
    assert ratio == 'SUM("Revenue") / SUM("Cost")'
    assert (
        build_expression("percent", "Revenue", "Cost")
        == '(SUM("Revenue") - SUM("Cost")) / SUM("Cost") * 100'
    )


def test_default_unit() -> None:
    assert default_unit("percent") == "%"
    assert default_unit("ratio") == "x"
    assert default_unit("sum") == ""
