from pathlib import Path

import pytest

from finboard.config import DEFAULT_TEMPLATES_FILE
from finboard.dataset import Dataset
from finboard.io import parse_csv
from finboard.kpis import KPI
from finboard.templates import (
    MeasureRule,
    detect_template_kpis,
    financial_health_score,
    load_template_catalog,
    resolve_measures,
)

STATEMENT = "\n".join(
    [
        "Metric,2022,2023",
        "Revenue,1000,1200",
        "COGS,400,500",
        "Net Income,100,150",
        "Current Assets,500,600",
        "Current Liabilities,250,300",
        "Total Assets,1500,1700",
        "Total Debt,200,200",
        "Total Equity,400,400",
    ]
)


@pytest.fixture()
def statement() -> Dataset:
    result = parse_csv(STATEMENT)
    assert result.dataset is not None
    return result.dataset


def write_rules(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "kpi_templates.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_builtin_catalog_loads() -> None:
    catalog = load_template_catalog(DEFAULT_TEMPLATES_FILE)

    keys = [t.key for t in catalog.kpis]
    assert "net_profit_margin" in keys
    assert "current_ratio" in keys
    assert catalog.measures["current_assets"].aggregation == "avg"
    assert catalog.measures["revenue_total"].aggregation == "sum"


def test_builtin_catalog_on_pivoted_statement(statement: Dataset) -> None:
    catalog = load_template_catalog(DEFAULT_TEMPLATES_FILE)

    kpis = {k.id: k for k in detect_template_kpis(statement, catalog)}

    assert kpis["net_profit_margin"].value == pytest.approx(12.5)
    assert kpis["gross_margin"].value == pytest.approx(58.33)
    assert kpis["revenue_growth"].value == pytest.approx(20.0)
    assert kpis["current_ratio"].value == pytest.approx(2.0)
    assert kpis["debt_to_equity"].value == pytest.approx(0.5)
    assert kpis["roe"].value == pytest.approx(37.5)
    assert kpis["roa"].value == pytest.approx(9.375, abs=0.01)
    assert kpis["working_capital"].value == pytest.approx(275.0)
    assert kpis["net_profit"].value == pytest.approx(150.0)
    assert kpis["total_revenue"].value == pytest.approx(2200.0)

    # No operating income or EBITDA line in the statement.
    assert "operating_margin" not in kpis
    assert "ebitda_margin" not in kpis


def test_template_series(statement: Dataset) -> None:
    catalog = load_template_catalog(DEFAULT_TEMPLATES_FILE)
    kpis = {k.id: k for k in detect_template_kpis(statement, catalog)}

    margin_series = kpis["net_profit_margin"].time_series
    assert margin_series is not None
    assert margin_series.values == pytest.approx((10.0, 12.5))
    assert margin_series.synthetic is False

    growth_series = kpis["revenue_growth"].time_series
    assert growth_series is not None
    assert growth_series.values == (1000.0, 1200.0)
    assert growth_series.labels == ("2022", "2023")


def test_template_kpi_metadata(statement: Dataset) -> None:
    catalog = load_template_catalog(DEFAULT_TEMPLATES_FILE)
    kpi = next(k for k in detect_template_kpis(statement, catalog) if k.id == "roe")

    assert kpi.name == "Return on Equity (%)"
    assert kpi.category == "Profitability"
    assert kpi.unit == "%"
    assert kpi.expression == "net_income / equity * 100"
    assert kpi.description


def test_custom_rules_clamp_and_skip(tmp_path: Path) -> None:
    rules = write_rules(
        tmp_path,
        """
[measures.sales]
aliases = ["sales"]
aggregation = "sum"

[measures.returns]
aliases = ["returns"]
aggregation = "sum"

[measures.missing]
aliases = ["does_not_exist"]

[kpis.return_rate]
name = "Return rate"
formula = "returns / sales * 100"
unit = "%"
max = 5

[kpis.per_return]
name = "Sales per return"
formula = "sales / (returns - returns)"
unit = "x"

[kpis.uses_missing]
name = "Needs a missing column"
formula = "missing * 2"

[kpis.absolute]
name = "Absolute swing"
formula = "abs(returns - sales) ** 1"
series = "none"
""",
    )
    dataset = Dataset.from_records(
        ["Sales", "Returns"],
        [{"Sales": "100", "Returns": "10"}, {"Sales": "100", "Returns": "20"}],
    )

    catalog = load_template_catalog(rules)
    kpis = {k.id: k for k in detect_template_kpis(dataset, catalog)}

    assert set(kpis) == {"return_rate", "absolute"}
    assert kpis["return_rate"].value == 5.0
    assert kpis["return_rate"].category == "General"
    assert kpis["absolute"].value == 170.0
    assert kpis["absolute"].time_series is None


def test_unsafe_formulas_are_skipped(tmp_path: Path) -> None:
    rules = write_rules(
        tmp_path,
        """
[measures.sales]
aliases = ["sales"]

[kpis.call]
formula = "__import__('os').getcwd()"

[kpis.attribute]
formula = "sales.real"

[kpis.conditional]
formula = "sales if sales else 1"

[kpis.ok]
formula = "sales * 2"
""",
    )
    dataset = Dataset.from_records(["Sales"], [{"Sales": "21"}])

    kpis = detect_template_kpis(dataset, load_template_catalog(rules))

    assert [k.id for k in kpis] == ["ok"]
    assert kpis[0].value == 42.0


def test_auto_aggregation_sums_long_columns() -> None:
    short = Dataset.from_records(["Sales"], [{"Sales": str(v)} for v in range(1, 4)])
    long = Dataset.from_records(["Sales"], [{"Sales": "1"} for _ in range(12)])
    rules = {"sales": MeasureRule(key="sales", aliases=("sales",))}

    assert resolve_measures(short, rules)[0]["sales"] == 3.0
    assert resolve_measures(long, rules)[0]["sales"] == 12.0


def test_unknown_aggregation_raises(tmp_path: Path) -> None:
    rules = write_rules(
        tmp_path,
        """
[measures.sales]
aliases = ["sales"]
aggregation = "median"
""",
    )

    with pytest.raises(ValueError):
        load_template_catalog(rules)


def test_missing_or_invalid_rules_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="KPI templates"):
        load_template_catalog(tmp_path / "nope.toml")

    bad = write_rules(tmp_path, "[kpis\n")
    with pytest.raises(ValueError, match="KPI templates"):
        load_template_catalog(bad)


def make_kpi(kpi_id: str, value: float | None) -> KPI:
    return KPI(
        id=kpi_id,
        name=kpi_id,
        operation="template",
        column_a=None,
        value=value,
        unit="",
        category="General",
    )


def test_health_score_excellent() -> None:
    health = financial_health_score(
        [
            make_kpi("net_profit_margin", 12.0),
            make_kpi("current_ratio", 2.0),
            make_kpi("debt_to_equity", 0.5),
        ]
    )

    assert health.score == 80
    assert health.health == "Excellent"
    assert health.metrics_analyzed == 3


@pytest.mark.parametrize(
    ("margin", "ratio", "leverage", "score", "label"),
    [
        (5.0, 1.2, 1.5, 65, "Good"),
        (-3.0, 0.8, 3.0, 20, "Concerning"),
        (-3.0, 1.2, 3.0, 35, "Fair"),
    ],
)
def test_health_score_levels(
    margin: float, ratio: float, leverage: float, score: int, label: str
) -> None:
    health = financial_health_score(
        [
            make_kpi("net_profit_margin", margin),
            make_kpi("current_ratio", ratio),
            make_kpi("debt_to_equity", leverage),
        ]
    )

    assert health.score == score
    assert health.health == label


def test_health_score_without_metrics() -> None:
    health = financial_health_score([make_kpi("net_profit_margin", None)])

    assert health.score == 50
    assert health.health == "Good"
    assert health.metrics_analyzed == 0
