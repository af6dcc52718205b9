# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for FinBoard.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application,
- providing the built-in defaults used when no configuration file exists.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .formatting import FormatOptions
from .io import ParseOptions
from .orientation import OrientationThresholds

DEFAULT_CONFIG_FILE = "finboard_config.toml"
DEFAULT_TEMPLATES_FILE = Path(__file__).parent / "data" / "kpi_templates.toml"

DISPLAY_MODES: tuple[str, ...] = ("table", "csv", "both")


@dataclass(frozen=True)
class KPIOptions:
    """Options for KPI computation."""

    templates_file: Path = DEFAULT_TEMPLATES_FILE
    value_decimals: Optional[int] = 2
    max_points: Optional[int] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for FinBoard.

    This aggregates:
    - number formatting options (system, decimals, currency symbol),
    - parsing options (strict mode, warning cap, orientation thresholds),
    - KPI options (templates file, value rounding, series length),
    - the CLI display mode.
    """

    formatting: FormatOptions = field(default_factory=FormatOptions)
    parsing: ParseOptions = field(default_factory=ParseOptions)
    kpis: KPIOptions = field(default_factory=KPIOptions)
    display_mode: str = "table"


def default_app_config() -> AppConfig:
    """Built-in configuration used when no TOML file is provided."""
    return AppConfig()


def load_toml(path: Path, label: str = "config") -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    ``label`` names the kind of file in error messages (``"config"``,
    ``"KPI templates"``).

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"TOML {label} file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"Failed to parse TOML {label} file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _int_option(
    section: Mapping[str, Any], key: str, default: Optional[int], where: str
) -> Optional[int]:
    raw = section.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc


def _float_option(
    section: Mapping[str, Any], key: str, default: float, where: str
) -> float:
    raw = section.get(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected a number."
        ) from exc


def _bool_option(
    section: Mapping[str, Any], key: str, default: bool, where: str
) -> bool:
    raw = section.get(key)
    if raw is None:
        return default
    if not isinstance(raw, bool):
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected true or false."
        )
    return raw


def _parse_formatting(raw: Mapping[str, Any]) -> FormatOptions:
    section = _section(raw, "formatting")
    defaults = FormatOptions()

    symbol = section.get("currency_symbol")
    try:
        return FormatOptions(
            system=str(section.get("system", defaults.system)),
            decimals=_int_option(section, "decimals", defaults.decimals, "formatting"),
            currency_symbol=str(symbol) if symbol is not None else None,
            compact=_bool_option(section, "compact", defaults.compact, "formatting"),
        )
    except ValueError as exc:
        raise ValueError(f"Invalid [formatting] section: {exc}") from exc


def _parse_parsing(raw: Mapping[str, Any]) -> ParseOptions:
    parsing = _section(raw, "parsing")
    orientation = _section(raw, "orientation")
    p_defaults = ParseOptions()
    o_defaults = OrientationThresholds()

    thresholds = OrientationThresholds(
        sample_rows=_int_option(
            orientation, "sample_rows", o_defaults.sample_rows, "orientation"
        ),
        max_period_headers=_int_option(
            orientation,
            "max_period_headers",
            o_defaults.max_period_headers,
            "orientation",
        ),
        date_header_ratio=_float_option(
            orientation,
            "date_header_ratio",
            o_defaults.date_header_ratio,
            "orientation",
        ),
        metric_row_ratio=_float_option(
            orientation,
            "metric_row_ratio",
            o_defaults.metric_row_ratio,
            "orientation",
        ),
        metric_row_min_matches=_int_option(
            orientation,
            "metric_row_min_matches",
            o_defaults.metric_row_min_matches,
            "orientation",
        ),
    )

    return ParseOptions(
        strict_mode=_bool_option(
            parsing, "strict_mode", p_defaults.strict_mode, "parsing"
        ),
        max_warnings=_int_option(
            parsing, "max_warnings", p_defaults.max_warnings, "parsing"
        ),
        orientation=thresholds,
    )


def _parse_kpis(raw: Mapping[str, Any], base_dir: Path) -> KPIOptions:
    kpis_section = _section(raw, "kpis")
    series_section = _section(raw, "timeseries")
    defaults = KPIOptions()

    templates_raw = kpis_section.get("templates_file")
    if templates_raw:
        templates_file = (base_dir / str(templates_raw)).resolve()
    else:
        templates_file = defaults.templates_file

    return KPIOptions(
        templates_file=templates_file,
        value_decimals=_int_option(
            kpis_section, "value_decimals", defaults.value_decimals, "kpis"
        ),
        max_points=_int_option(
            series_section, "max_points", defaults.max_points, "timeseries"
        ),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the FinBoard application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [formatting]
        system ("indian" or "international"), decimals, currency_symbol
        and compact.

    [parsing]
        strict_mode and max_warnings for column-count mismatches.

    [orientation]
        Thresholds of the orientation classifier (sample_rows,
        max_period_headers, date_header_ratio, metric_row_ratio,
        metric_row_min_matches).

    [kpis]
        templates_file (standard KPI catalogue) and value_decimals.

    [timeseries]
        max_points kept in KPI series.

    [display]
        mode: "table", "csv" or "both".

    Notes
    -----
    - Every section is optional; missing keys fall back to the defaults
      of ``default_app_config()``.
    - All file paths in the TOML are resolved relative to the directory of
      the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``finboard_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = load_toml(config_file)
    base_dir = config_file.parent

    formatting = _parse_formatting(raw)
    parsing = _parse_parsing(raw)
    kpis = _parse_kpis(raw, base_dir)

    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid value for 'display.mode': {display_mode!r}. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )

    return AppConfig(
        formatting=formatting,
        parsing=parsing,
        kpis=kpis,
        display_mode=display_mode,
    )
