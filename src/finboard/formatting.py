# FinBoard - Financial data ingestion & KPI dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Number formatting for FinBoard dashboards.

Two magnitude systems are supported:

- ``indian``: Crore (10^7, "Cr"), Lakh (10^5, "L"), Thousand (10^3, "K");
  full numbers are grouped 3-then-2 (``1,23,45,678``),
- ``international``: Trillion, Billion, Million, Thousand ("T", "B", "M",
  "K"); full numbers are grouped by 3 (``12,345,678``).

Every formatter returns a ``FormattedValue`` with three strings:

- ``formatted``: the compact display string (``₹72.45 L``),
- ``full``: the expanded value with locale grouping (``₹72,45,000``),
- ``tooltip``: the full value plus a magnitude hint
  (``₹72,45,000 (72.45 Lakh)``).

Units
-----
- ``%``, ``x``/``ratio``, ``times``, ``days`` and ``score`` are special:
  below 1000 in magnitude the rounded number is shown with the unit
  suffix; from 1000 upwards the number is compacted in the chosen system
  before the suffix is appended,
- ``₹``, ``$``, ``€`` and ``£`` select the currency symbol,
- any other unit is appended to the number instead of a currency symbol,
- no unit means a currency value with the system's default symbol
  (``₹`` for Indian, ``$`` for international) unless
  ``FormatOptions.currency_symbol`` overrides it.

Rounding is half-up at ``decimals`` places. Formatters are pure functions
of their arguments and are memoized.
"""

import math
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal, localcontext
from functools import lru_cache
from typing import Any, Optional

from .columns import coerce_number

INDIAN = "indian"
INTERNATIONAL = "international"
SYSTEMS: tuple[str, ...] = (INDIAN, INTERNATIONAL)

CURRENCY_UNITS: tuple[str, ...] = ("₹", "$", "€", "£")

# Special unit -> suffix appended to the number.
SPECIAL_UNIT_SUFFIXES: dict[str, str] = {
    "%": "%",
    "x": "x",
    "ratio": "x",
    "times": " times",
    "days": " days",
    "score": "/100",
}

COMPACT_THRESHOLD = 1000


@dataclass(frozen=True)
class MagnitudeUnit:
    value: float
    suffix: str
    name: str
    breakdown_label: str


INDIAN_UNITS: tuple[MagnitudeUnit, ...] = (
    MagnitudeUnit(1e7, "Cr", "Crore", "Crores"),
    MagnitudeUnit(1e5, "L", "Lakh", "Lakhs"),
    MagnitudeUnit(1e3, "K", "Thousand", "Thousands"),
)

INTERNATIONAL_UNITS: tuple[MagnitudeUnit, ...] = (
    MagnitudeUnit(1e12, "T", "Trillion", "Trillion"),
    MagnitudeUnit(1e9, "B", "Billion", "Billion"),
    MagnitudeUnit(1e6, "M", "Million", "Million"),
    MagnitudeUnit(1e3, "K", "Thousand", "Thousand"),
)


@dataclass(frozen=True)
class FormatOptions:
    """
    Formatting options.

    Attributes:
        system: ``"indian"`` or ``"international"``.
        decimals: Decimal places kept after rounding.
        currency_symbol: Symbol for currency values; ``None`` selects the
            system default.
        compact: ``False`` forces the fully expanded display.
    """

    system: str = INDIAN
    decimals: int = 2
    currency_symbol: Optional[str] = None
    compact: bool = True

    def __post_init__(self) -> None:
        if self.system not in SYSTEMS:
            raise ValueError(
                f"Unknown number system: {self.system!r}. "
                f"Expected one of: {', '.join(SYSTEMS)}."
            )
        if self.decimals < 0:
            raise ValueError("decimals must be >= 0.")

    @property
    def symbol(self) -> str:
        return get_currency_symbol(self.system, self.currency_symbol)


@dataclass(frozen=True)
class FormattedValue:
    formatted: str
    full: str
    tooltip: str


@dataclass(frozen=True)
class ValueBreakdown:
    """Magnitude decomposition of a value, for detailed tooltips."""

    lines: tuple[str, ...]
    summary: str
    in_words: Optional[str] = None


NOT_AVAILABLE = FormattedValue("N/A", "N/A", "No data available")


def get_currency_symbol(system: str, custom: Optional[str] = None) -> str:
    if custom is not None:
        return custom
    return "₹" if system == INDIAN else "$"


def _units_for(system: str) -> tuple[MagnitudeUnit, ...]:
    return INTERNATIONAL_UNITS if system == INTERNATIONAL else INDIAN_UNITS


def _to_number(value: Any) -> Optional[float]:
    number = coerce_number(value)
    if number is None:
        return None
    return float(number)


def round_half_up(value: float, decimals: int) -> Decimal:
    """Round ``value`` half-up to ``decimals`` places, as a Decimal."""
    with localcontext() as ctx:
        ctx.prec = 60
        quantum = Decimal(1).scaleb(-decimals)
        return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def _plain(value: Decimal) -> str:
    """Decimal in fixed notation without trailing fractional zeros."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits

    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join([*groups, tail])


def _group_international(digits: str) -> str:
    return f"{int(digits):,}"


def _grouped(abs_value: float, system: str, decimals: int, fixed: bool) -> str:
    text = format(round_half_up(abs_value, decimals), "f")
    int_part, _, frac = text.partition(".")
    if not fixed:
        frac = frac.rstrip("0")

    if system == INDIAN:
        grouped = _group_indian(int_part)
    else:
        grouped = _group_international(int_part)
    return f"{grouped}.{frac}" if frac else grouped


def _format_grouped(num: Any, system: str, decimals: int) -> str:
    number = _to_number(num)
    if number is None:
        return "N/A"
    body = _grouped(abs(number), system, decimals, fixed=False)
    if number < 0 and body.strip("0.,"):
        return f"-{body}"
    return body


def format_indian_number(num: Any, decimals: int = 2) -> str:
    """
    Group digits the Indian way: last three, then pairs.

    >>> format_indian_number(12345678)
    '1,23,45,678'
    """
    return _format_grouped(num, INDIAN, decimals)


def format_international_number(num: Any, decimals: int = 2) -> str:
    """
    Group digits by thousands.

    >>> format_international_number(12345678)
    '12,345,678'
    """
    return _format_grouped(num, INTERNATIONAL, decimals)


def _select_unit(abs_value: float, system: str) -> MagnitudeUnit:
    units = _units_for(system)
    for unit in units:
        if abs_value >= unit.value:
            return unit
    return units[-1]


@lru_cache(maxsize=2048, typed=True)
def format_number(
    value: Any,
    options: FormatOptions = FormatOptions(),
    unit: Optional[str] = None,
) -> FormattedValue:
    """
    Format a currency or plain value.

    ``unit``, when given, is appended to the number instead of the
    currency symbol.
    """
    num = _to_number(value)
    if num is None:
        return NOT_AVAILABLE

    symbol = options.symbol
    if num == 0:
        zero = f"0{unit}" if unit else f"{symbol}0"
        return FormattedValue(zero, zero, zero)

    negative = num < 0
    sign = "-" if negative else ""
    abs_num = abs(num)

    grouped_full = _grouped(abs_num, options.system, options.decimals, fixed=False)
    if unit:
        full = f"{sign}{grouped_full}{unit}"
    else:
        full = f"{sign}{symbol}{grouped_full}"

    if not options.compact or abs_num < COMPACT_THRESHOLD:
        if unit:
            rounded = round_half_up(abs_num, options.decimals)
            small_sign = sign if rounded else ""
            formatted = f"{small_sign}{_plain(rounded)}{unit}"
        else:
            body = _grouped(
                abs_num, options.system, options.decimals, fixed=not options.compact
            )
            small_sign = sign if body.strip("0.,") else ""
            formatted = f"{small_sign}{symbol}{body}"
        return FormattedValue(formatted, full, full)

    selected = _select_unit(abs_num, options.system)
    compact = _plain(round_half_up(abs_num / selected.value, options.decimals))

    if unit:
        formatted = f"{sign}{compact}{selected.suffix}{unit}"
    else:
        formatted = f"{sign}{symbol}{compact} {selected.suffix}"

    negative_note = ", Negative" if negative else ""
    tooltip = f"{full} ({compact} {selected.name}{negative_note})"
    return FormattedValue(formatted, full, tooltip)


def _format_special(num: float, suffix: str, options: FormatOptions) -> FormattedValue:
    negative = num < 0
    abs_num = abs(num)

    if abs_num < COMPACT_THRESHOLD:
        rounded = round_half_up(abs_num, options.decimals)
        sign = "-" if negative and rounded else ""
        text = f"{sign}{_plain(rounded)}{suffix}"
        return FormattedValue(text, text, text)

    sign = "-" if negative else ""
    selected = _select_unit(abs_num, options.system)
    compact = _plain(round_half_up(abs_num / selected.value, options.decimals))
    separator = " " if options.system == INDIAN else ""

    formatted = f"{sign}{compact}{separator}{selected.suffix}{suffix}"
    grouped = _grouped(abs_num, options.system, options.decimals, fixed=False)
    full = f"{sign}{grouped}{suffix}"
    negative_note = ", Negative" if negative else ""
    tooltip = f"{full} ({compact} {selected.name}{negative_note})"
    return FormattedValue(formatted, full, tooltip)


@lru_cache(maxsize=2048, typed=True)
def format_kpi(
    value: Any,
    unit: Optional[str] = "",
    options: FormatOptions = FormatOptions(),
) -> FormattedValue:
    """
    Format a KPI value according to its unit.

    See the module docstring for how units are interpreted.
    """
    num = _to_number(value)
    if num is None:
        return NOT_AVAILABLE

    unit_text = (unit or "").strip()
    special = SPECIAL_UNIT_SUFFIXES.get(unit_text.lower())
    if special is not None:
        return _format_special(num, special, options)

    if unit_text in CURRENCY_UNITS:
        return format_number(num, replace(options, currency_symbol=unit_text))

    return format_number(num, options, unit=unit_text or None)


def format_kpi_value(
    value: Any,
    unit: Optional[str] = "",
    options: FormatOptions = FormatOptions(),
) -> str:
    """Compact display string of a KPI value (``format_kpi(...).formatted``)."""
    return format_kpi(value, unit, options).formatted


def _indian_words(abs_value: float) -> str:
    if abs_value == 0:
        return "Zero"

    crores = math.floor(abs_value / 1e7)
    lakhs = math.floor((abs_value % 1e7) / 1e5)

    parts: list[str] = []
    if crores > 0:
        parts.append(f"{crores} Crore{'s' if crores > 1 else ''}")
    if lakhs > 0:
        parts.append(f"{lakhs} Lakh{'s' if lakhs > 1 else ''}")

    if not parts and abs_value >= 1000:
        parts.append(f"{math.floor(abs_value / 1000)} Thousand")

    return " ".join(parts) or _plain(round_half_up(abs_value, 2))


def value_breakdown(
    value: Any,
    system: str = INDIAN,
    currency_symbol: Optional[str] = None,
) -> ValueBreakdown:
    """
    Decompose ``value`` into its magnitude units.

    >>> value_breakdown(12345678).lines
    ('1 Crores', '23 Lakhs', '45 Thousands', '678')
    """
    num = _to_number(value)
    if num is None:
        return ValueBreakdown(lines=("No data available",), summary="N/A")

    abs_num = abs(num)
    sign = "-" if num < 0 else ""
    lines: list[str] = []

    remainder = abs_num
    for unit in _units_for(system):
        count = math.floor(remainder / unit.value)
        remainder -= count * unit.value
        if count > 0:
            amount = format_indian_number(count) if system == INDIAN else str(count)
            prefix = sign if not lines else ""
            lines.append(f"{prefix}{amount} {unit.breakdown_label}")

    rounded_rest = round_half_up(remainder, 2)
    if rounded_rest > 0 or not lines:
        lines.append(f"{sign if not lines else ''}{_plain(rounded_rest)}")

    symbol = get_currency_symbol(system, currency_symbol)
    summary = f"{symbol}{sign}{_grouped(abs_num, system, 2, fixed=False)}"
    in_words = _indian_words(abs_num) if system == INDIAN else None

    return ValueBreakdown(lines=tuple(lines), summary=summary, in_words=in_words)


_SUFFIX_MULTIPLIERS: dict[str, float] = {
    "cr": 1e7,
    "crore": 1e7,
    "crores": 1e7,
    "l": 1e5,
    "lakh": 1e5,
    "lakhs": 1e5,
    "t": 1e12,
    "trillion": 1e12,
    "b": 1e9,
    "billion": 1e9,
    "m": 1e6,
    "million": 1e6,
    "k": 1e3,
    "thousand": 1e3,
}


def parse_formatted_number(text: Any) -> Optional[float]:
    """
    Read back a string produced by the formatters.

    Currency symbols, grouping commas, whitespace and a trailing ``%`` are
    ignored; a magnitude suffix (``Cr``, ``L``, ``K``, ``M``, ``Billion``,
    ...) multiplies the number. Returns ``None`` when unparseable.

    >>> parse_formatted_number("₹72.45 L")
    7245000.0
    """
    if not isinstance(text, str) or not text.strip():
        return None

    cleaned = text.strip().rstrip("%")
    cleaned = "".join(c for c in cleaned if c not in CURRENCY_UNITS)
    cleaned = cleaned.replace(",", "").replace(" ", "").lower()

    number_part = cleaned.rstrip("abcdefghijklmnopqrstuvwxyz")
    suffix = cleaned[len(number_part) :]

    multiplier = 1.0
    if suffix:
        if suffix not in _SUFFIX_MULTIPLIERS:
            return None
        multiplier = _SUFFIX_MULTIPLIERS[suffix]

    number = coerce_number(number_part)
    if number is None:
        return None
    return float(number) * multiplier
