# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
FinBoard
--------

The data core of a financial dashboard for small businesses: it turns the
spreadsheet exports users upload into clean datasets, computes the KPIs
they configure, and formats the results for display.

Main capabilities:
- tolerant CSV/TSV/JSON ingestion with delimiter detection and quoted fields,
- detection of "metrics as rows, periods as columns" exports and their
  pivot into one row per period,
- numeric coercion of currency-formatted cells ("₹1,23,456", "(500)"),
- user-defined KPIs (sum, avg, min, max, count, ratio, percent) with
  real or explicitly synthetic time series,
- standard financial KPIs from a TOML catalogue and a health score,
- compact Indian (K / L / Cr) and international (K / M / B / T) number
  formatting with full-precision tooltips.

FinBoard separates computation (engine, templates), configuration (TOML)
and presentation (views, CLI), so the same core can back a web dashboard,
scripts or report generation.

Version: 0.1.0

Usage:
    finboard --help
"""

__all__ = [
    "columns",
    "config",
    "dataset",
    "engine",
    "formatting",
    "io",
    "kpis",
    "orientation",
    "pivot",
    "templates",
    "timeseries",
    "tokenizer",
    "views",
]

__version__ = "0.1.0"
