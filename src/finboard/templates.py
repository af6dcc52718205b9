# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Standard financial KPIs detected automatically in an imported file.

Besides user-defined KPIs (kpis.py), FinBoard offers a catalogue of
standard KPIs (net profit margin, gross margin, current ratio, ...). The
catalogue lives in a TOML rules file (``kpis/kpi_templates.toml`` by
default) with two kinds of sections:

1. Measures
   --------
   ``[measures.<key>]`` binds a measure name to dataset columns:

       aliases     : column names tried in order (tolerant matching,
                     see ``columns.find_column``),
       aggregation : how the column collapses to one number:
                     "sum", "avg", "first", "last", "previous"
                     (second-to-last value) or "auto" (last value for
                     10 values or fewer, sum otherwise). Default "auto".

2. KPI templates
   -------------
   ``[kpis.<key>]`` defines one KPI:

       name, category, description, unit,
       formula : arithmetic expression over measure names,
       min/max : optional clamp applied to the result,
       series  : "formula" (default) evaluates the formula row by row to
                 build the time series, "none" disables it, any other
                 value names a measure whose column is used as series.

A template whose formula references a measure that is absent from the
dataset, or that divides by zero, is skipped: only KPIs that can actually
be computed are returned.

Formulas are evaluated with a restricted AST walker supporting numbers,
measure names, ``+ - * / % **``, unary minus, parentheses and ``abs()``.
"""

import ast
import logging
import operator
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .columns import coerce_number, find_column
from .config import load_toml
from .dataset import Dataset
from .kpis import KPI
from .timeseries import TimeSeries, extract_time_series, series_from_values

logger = logging.getLogger(__name__)

AGGREGATIONS: tuple[str, ...] = ("auto", "sum", "avg", "first", "last", "previous")

# Values at or below this count are treated as period-end snapshots by "auto".
AUTO_LAST_MAX_VALUES = 10


@dataclass(frozen=True)
class MeasureRule:
    key: str
    aliases: tuple[str, ...]
    aggregation: str = "auto"


@dataclass(frozen=True)
class KPITemplate:
    key: str
    name: str
    category: str
    description: str
    formula: str
    unit: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    series: str = "formula"


@dataclass(frozen=True)
class TemplateCatalog:
    measures: Mapping[str, MeasureRule]
    kpis: tuple[KPITemplate, ...]


@dataclass(frozen=True)
class HealthScore:
    health: str
    score: int
    message: str
    metrics_analyzed: int


def _optional_float(cfg: Mapping[str, Any], name: str, key: str) -> Optional[float]:
    raw = cfg.get(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid '{name}' for KPI template {key!r}.") from exc


def load_template_catalog(path: Path) -> TemplateCatalog:
    """
    Load measures and KPI templates from a TOML rules file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the file is not valid TOML or a measure uses an
            unknown aggregation.
    """
    data = load_toml(Path(path), "KPI templates")

    measures_section = data.get("measures") or {}
    if not isinstance(measures_section, Mapping):
        measures_section = {}

    measures: dict[str, MeasureRule] = {}
    for key, cfg in measures_section.items():
        if not isinstance(cfg, Mapping):
            continue

        aliases = cfg.get("aliases") or [key]
        aggregation = str(cfg.get("aggregation", "auto"))
        if aggregation not in AGGREGATIONS:
            raise ValueError(
                f"Unknown aggregation {aggregation!r} for measure {key!r}. "
                f"Expected one of: {', '.join(AGGREGATIONS)}."
            )

        measures[str(key)] = MeasureRule(
            key=str(key),
            aliases=tuple(str(a) for a in aliases),
            aggregation=aggregation,
        )

    kpis_section = data.get("kpis") or {}
    if not isinstance(kpis_section, Mapping):
        kpis_section = {}

    templates: list[KPITemplate] = []
    for key, cfg in kpis_section.items():
        if not isinstance(cfg, Mapping) or not cfg.get("formula"):
            continue

        templates.append(
            KPITemplate(
                key=str(key),
                name=str(cfg.get("name") or key),
                category=str(cfg.get("category") or "General"),
                description=str(cfg.get("description") or ""),
                formula=str(cfg["formula"]),
                unit=str(cfg.get("unit", "")),
                minimum=_optional_float(cfg, "min", str(key)),
                maximum=_optional_float(cfg, "max", str(key)),
                series=str(cfg.get("series", "formula")),
            )
        )

    return TemplateCatalog(measures=measures, kpis=tuple(templates))


_ALLOWED_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.USub: operator.neg,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}

_ALLOWED_FUNCTIONS = {"abs": abs}


def _safe_eval_expr(expr: str, variables: Mapping[str, float]) -> float:
    """
    Safely evaluate a simple arithmetic expression using the given variables.

    Raises:
        ValueError: if the expression contains unsupported constructs or
            unknown variables.
        ZeroDivisionError: on division by zero.
    """
    try:
        tree = ast.parse(expr, mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"Invalid expression syntax: {expr!r}") from exc

    def _eval(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return _eval(node.body)

        if isinstance(node, ast.Constant):
            if isinstance(node.value, (int, float)):
                return float(node.value)
            raise ValueError(f"Unsupported constant in expression: {node.value!r}")

        if isinstance(node, ast.Name):
            if node.id not in variables:
                raise ValueError(f"Unknown variable in expression: {node.id!r}")
            return float(variables[node.id])

        if isinstance(node, ast.BinOp):
            op_type = type(node.op)
            if op_type not in _ALLOWED_OPERATORS:
                raise ValueError(f"Unsupported operator in expression: {op_type}")
            left, right = _eval(node.left), _eval(node.right)
            return float(_ALLOWED_OPERATORS[op_type](left, right))

        if isinstance(node, ast.UnaryOp):
            if type(node.op) not in _ALLOWED_OPERATORS:
                raise ValueError(f"Unsupported unary operator: {node.op!r}")
            return float(_ALLOWED_OPERATORS[type(node.op)](_eval(node.operand)))

        if isinstance(node, ast.Call):
            func = node.func
            if (
                isinstance(func, ast.Name)
                and func.id in _ALLOWED_FUNCTIONS
                and len(node.args) == 1
                and not node.keywords
            ):
                return float(_ALLOWED_FUNCTIONS[func.id](_eval(node.args[0])))
            raise ValueError("Unsupported function call in expression.")

        raise ValueError(f"Unsupported expression node: {type(node).__name__}")

    return _eval(tree)


def _collapse(values: list[float], aggregation: str) -> Optional[float]:
    if not values:
        return None

    if aggregation == "auto":
        aggregation = "last" if len(values) <= AUTO_LAST_MAX_VALUES else "sum"

    if aggregation == "sum":
        return sum(values)
    if aggregation == "avg":
        return sum(values) / len(values)
    if aggregation == "first":
        return values[0]
    if aggregation == "last":
        return values[-1]
    # previous
    return values[-2] if len(values) >= 2 else None


def resolve_measures(
    dataset: Dataset,
    measures: Mapping[str, MeasureRule],
) -> tuple[dict[str, float], dict[str, str]]:
    """
    Evaluate every measure that can be found in ``dataset``.

    Returns:
        ``(values, columns)``: measure key -> aggregated value, and
        measure key -> matched column name.
    """
    values: dict[str, float] = {}
    columns: dict[str, str] = {}

    for key, rule in measures.items():
        column = find_column(dataset.headers, rule.aliases)
        if column is None:
            continue

        numbers = [
            float(n)
            for n in (coerce_number(v) for v in dataset.column_values(column))
            if n is not None
        ]
        value = _collapse(numbers, rule.aggregation)
        if value is None:
            continue

        values[key] = value
        columns[key] = column

    return values, columns


def _clamp(value: float, template: KPITemplate) -> float:
    if template.minimum is not None:
        value = max(template.minimum, value)
    if template.maximum is not None:
        value = min(template.maximum, value)
    return value


def _row_series(
    dataset: Dataset,
    template: KPITemplate,
    columns: Mapping[str, str],
) -> Optional[TimeSeries]:
    values: list[Optional[float]] = []
    for row in dataset.rows:
        row_measures: dict[str, float] = {}
        for key, column in columns.items():
            number = coerce_number(row.get(column))
            if number is not None:
                row_measures[key] = float(number)
        try:
            raw = _safe_eval_expr(template.formula, row_measures)
            values.append(_clamp(raw, template))
        except (ValueError, ZeroDivisionError, OverflowError):
            values.append(None)

    return series_from_values(values)


def _template_series(
    dataset: Dataset,
    template: KPITemplate,
    columns: Mapping[str, str],
) -> Optional[TimeSeries]:
    if template.series == "none":
        return None
    if template.series == "formula":
        return _row_series(dataset, template, columns)

    column = columns.get(template.series)
    if column is None:
        return None
    return extract_time_series(dataset, column)


def detect_template_kpis(
    dataset: Dataset,
    catalog: TemplateCatalog,
    source_name: str = "",
) -> list[KPI]:
    """
    Compute every KPI template of ``catalog`` that ``dataset`` supports.

    Templates that cannot be evaluated are skipped (and logged).
    """
    measure_values, columns = resolve_measures(dataset, catalog.measures)
    logger.debug("Resolved measures for %s: %s", source_name or "dataset", columns)

    results: list[KPI] = []
    for template in catalog.kpis:
        try:
            raw = _safe_eval_expr(template.formula, measure_values)
        except (ValueError, ZeroDivisionError, OverflowError) as exc:
            logger.debug("Skipping KPI template %s: %s", template.key, exc)
            continue

        value = round(_clamp(raw, template), 2)
        series = _template_series(dataset, template, columns)
        if series is not None and len(series) < 2:
            series = None

        results.append(
            KPI(
                id=template.key,
                name=template.name,
                operation="template",
                column_a=None,
                value=value,
                unit=template.unit,
                category=template.category,
                expression=template.formula,
                time_series=series,
                description=template.description,
            )
        )

    logger.info(
        "Detected %d template KPIs for %s", len(results), source_name or "dataset"
    )
    return results


def financial_health_score(kpis: Iterable[KPI]) -> HealthScore:
    """
    Overall health score (0-100) from net margin, current ratio and
    debt-to-equity, when available.
    """
    by_id = {k.id: k.value for k in kpis if k.value is not None}

    score = 50
    metrics = 0

    net_margin = by_id.get("net_profit_margin")
    if net_margin is not None:
        score += 10 if net_margin > 10 else 5 if net_margin > 0 else -10
        metrics += 1

    current_ratio = by_id.get("current_ratio")
    if current_ratio is not None:
        score += 10 if current_ratio > 1.5 else 5 if current_ratio > 1 else -10
        metrics += 1

    debt_to_equity = by_id.get("debt_to_equity")
    if debt_to_equity is not None:
        score += 10 if debt_to_equity < 1 else 5 if debt_to_equity < 2 else -10
        metrics += 1

    score = max(0, min(100, score))

    if score >= 70:
        health, message = "Excellent", "Strong financial position"
    elif score >= 50:
        health, message = "Good", "Healthy financials"
    elif score >= 30:
        health, message = "Fair", "Some areas need attention"
    else:
        health, message = "Concerning", "Multiple areas need improvement"

    return HealthScore(
        health=health, score=score, message=message, metrics_analyzed=metrics
    )
