# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-line interface for FinBoard.

This module wires together the main building blocks of the application:

- configuration (formatting, parsing and KPI options),
- file ingestion (delimiter detection, orientation, pivot),
- standard KPI templates and the financial health score,
- an optional user-defined KPI,
- tabular views of the dataset and the KPIs.

High-level flow
---------------

1) Load the TOML configuration: the file given with ``--config``, else
   ``finboard_config.toml`` in the current directory when it exists,
   else the built-in defaults.

2) Apply command-line overrides (number system, decimals, strict mode,
   templates file, display mode).

3) Parse the input file. A failed parse prints the error and exits with
   status 1; column-count warnings are printed and parsing continues.

4) Detect the standard KPIs supported by the dataset and compute the
   overall financial health score.

5) When ``--column`` is given, build one user-defined KPI over that
   column (``--operation``, optional ``--column-b``, ``--unit``, ``--name``).

6) Render the column summary and the KPIs as console tables and/or CSV
   files depending on the display mode.

Display modes
-------------

- ``table``: print the tables to stdout (pandas ``to_string``),
- ``csv``:   write ``columns_<timestamp>.csv`` and ``kpis_<timestamp>.csv``
             to the output directory (``data/output`` by default),
- ``both``:  do both.

Examples
--------

    finboard data/financials.csv
    finboard data/pnl.csv --system international --decimals 1
    finboard data/pnl.csv --column Revenue --operation ratio --column-b Cost
    finboard data/pnl.csv --display-mode both --output-dir reports/
"""

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .config import (
    DEFAULT_CONFIG_FILE,
    DISPLAY_MODES,
    AppConfig,
    default_app_config,
    load_app_config,
)
from .dataset import Dataset
from .engine import OPERATIONS, TWO_COLUMN_OPERATIONS
from .formatting import SYSTEMS, format_kpi
from .io import read_file
from .kpis import KPI, KPIDefinition, build_kpi, column_refs
from .templates import (
    detect_template_kpis,
    financial_health_score,
    load_template_catalog,
)
from .views import dataset_summary, kpis_to_dataframe

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="finboard",
        description=(
            "FinBoard - Financial data ingestion & KPI dashboard core. "
            "Parses a CSV/TSV/JSON financial export, normalizes its "
            "orientation, computes standard and custom KPIs and renders "
            "them with compact Indian or international number formatting."
        ),
    )

    ap.add_argument("file", nargs="?", help="CSV, TSV, TXT or JSON file to analyse.")

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of finboard and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when "
            "present, otherwise the built-in defaults."
        ),
    )
    ap.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log detection decisions (delimiter, orientation, pivot).",
    )

    # Formatting and parsing overrides
    ap.add_argument(
        "--system",
        choices=list(SYSTEMS),
        help="Override formatting.system (number grouping and magnitude units).",
    )
    ap.add_argument(
        "--decimals",
        type=int,
        help="Override formatting.decimals.",
    )
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Skip rows whose column count does not match the header.",
    )
    ap.add_argument(
        "--templates",
        dest="templates_file",
        help="Override kpis.templates_file (standard KPI catalogue).",
    )

    # User-defined KPI
    ap.add_argument(
        "--column",
        help="Column of the user-defined KPI (column A).",
    )
    ap.add_argument(
        "--operation",
        choices=list(OPERATIONS),
        default="sum",
        help="Operation of the user-defined KPI (default: sum).",
    )
    ap.add_argument(
        "--column-b",
        dest="column_b",
        help="Second column, required by 'ratio' and 'percent'.",
    )
    ap.add_argument(
        "--unit",
        default="",
        help="Display unit of the user-defined KPI (e.g. ₹, %%, x, days).",
    )
    ap.add_argument(
        "--name",
        help="Display name of the user-defined KPI.",
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=list(DISPLAY_MODES),
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output-dir",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )

    return ap


def _load_config(config_path: Optional[str]) -> AppConfig:
    if config_path:
        return load_app_config(config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return default_app_config()


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return ``config`` with the command-line overrides applied."""
    formatting = config.formatting
    if args.system:
        formatting = replace(formatting, system=args.system)
    if args.decimals is not None:
        formatting = replace(formatting, decimals=args.decimals)

    parsing = config.parsing
    if args.strict:
        parsing = replace(parsing, strict_mode=True)

    kpis = config.kpis
    if args.templates_file:
        kpis = replace(kpis, templates_file=Path(args.templates_file).resolve())

    return replace(
        config,
        formatting=formatting,
        parsing=parsing,
        kpis=kpis,
        display_mode=args.display_mode or config.display_mode,
    )


def _custom_kpi(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    dataset: Dataset,
    source_id: str,
    config: AppConfig,
) -> KPI:
    refs = {ref.name: ref for ref in column_refs(dataset, source_id)}

    column_a = refs.get(args.column)
    if column_a is None:
        parser.error(
            f"Column {args.column!r} not found. "
            f"Available columns: {', '.join(dataset.headers)}"
        )

    column_b = None
    if args.operation in TWO_COLUMN_OPERATIONS:
        if not args.column_b:
            parser.error(f"--column-b is required by operation {args.operation!r}.")
        column_b = refs.get(args.column_b)
        if column_b is None:
            parser.error(f"Column {args.column_b!r} not found.")

    definition = KPIDefinition(
        id="custom",
        name=args.name or f"{args.operation.upper()} of {args.column}",
        operation=args.operation,
        column_a=column_a,
        column_b=column_b,
        unit=args.unit,
    )
    return build_kpi(
        definition,
        {source_id: dataset},
        value_decimals=config.kpis.value_decimals,
        max_points=config.kpis.max_points,
    )


def main() -> None:
    """Entry point for the FinBoard CLI.

    This function parses command-line arguments, loads the configuration,
    parses the input file, computes the standard KPIs and the optional
    user-defined KPI, and renders the results as console tables and/or
    CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args()

    # --version: short-circuit and exit early.
    if args.version:
        print(f"finboard version {__version__}")
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.file:
        parser.error("the following arguments are required: file")

    # 1) Configuration and overrides
    try:
        config = _apply_overrides(_load_config(args.config_path), args)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    # 2) Parse the input file
    input_path = Path(args.file)
    if not input_path.is_file():
        parser.error(f"Input file not found: {input_path}")

    result = read_file(str(input_path), config.parsing)
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if not result.success or result.dataset is None:
        print(f"Error: {result.error}", file=sys.stderr)
        raise SystemExit(1)

    dataset = result.dataset
    source_id = input_path.name

    # 3) Standard KPIs from the template catalogue
    try:
        catalog = load_template_catalog(config.kpis.templates_file)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    kpis = detect_template_kpis(dataset, catalog, source_name=source_id)
    health = financial_health_score(kpis)

    # 4) Optional user-defined KPI
    if args.column:
        kpis.append(_custom_kpi(parser, args, dataset, source_id, config))

    columns_df = dataset_summary(dataset)
    kpis_df = kpis_to_dataframe(kpis, config.formatting)

    # 5) Render to console (table mode).
    if config.display_mode in {"table", "both"}:
        print()
        print(
            f"=== {source_id} ({result.strategy}, {dataset.orientation}, "
            f"{dataset.row_count} rows) ==="
        )
        if dataset.pivot_meta is not None:
            meta = dataset.pivot_meta
            print(
                f"Pivoted {meta.attribute_count} metrics "
                f"across {len(meta.period_headers)} periods."
            )
        print(columns_df.to_string(index=False))

        print()
        print("=== KPIs ===")
        if kpis_df.empty:
            print("No KPI could be computed from this file.")
        else:
            print(
                kpis_df[["name", "category", "formatted", "tooltip"]].to_string(
                    index=False
                )
            )

        print()
        score = format_kpi(health.score, "score", config.formatting).formatted
        print(
            f"Financial health: {health.health} ({score}) - {health.message} "
            f"[{health.metrics_analyzed} metrics analysed]"
        )

    # 6) Render to CSV files (csv mode).
    if config.display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

        path = output_dir / f"columns_{timestamp}.csv"
        columns_df.to_csv(path, index=False)
        print(f"Wrote {path} ({len(columns_df)} rows)")

        path = output_dir / f"kpis_{timestamp}.csv"
        kpis_df.to_csv(path, index=False)
        print(f"Wrote {path} ({len(kpis_df)} rows)")


if __name__ == "__main__":
    main()
