#!/usr/bin/env python3
"""
Cell Value Formatter
Converts raw spreadsheet cell values into display strings for the portfolio table.
"""

import math
import re
import warnings
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import Any, Dict, Optional

import pandas as pd

# Display placeholders
EMPTY_CURRENCY = "$0.00"
DASH = "-"

# Spreadsheet serial day 0 (serial 25569 == 1970-01-01)
SERIAL_EPOCH = datetime(1899, 12, 30)

_NON_NUMERIC = re.compile(r'[^0-9.\-]+')
_LEADING_FLOAT = re.compile(r'^-?(\d+\.?\d*|\.\d+)')


class ColumnKind(Enum):
    """How a column's cells are rendered."""
    CURRENCY = "currency"
    PERCENT = "percent"
    DATE = "date"
    PLAIN = "plain"


# Column key -> formatter kind; resolved once when columns are configured
DEFAULT_COLUMN_KINDS: Dict[str, ColumnKind] = {
    'Interest Rate': ColumnKind.PERCENT,
    'Percent Owned': ColumnKind.PERCENT,
    'Loan Balance': ColumnKind.CURRENCY,
    'Regular Payment': ColumnKind.CURRENCY,
    'Maturity Date': ColumnKind.DATE,
    'Next Payment Date': ColumnKind.DATE,
    'Interest Paid To Date': ColumnKind.DATE,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_missing(value: Any) -> bool:
    if value is None or value == '':
        return True
    return isinstance(value, float) and math.isnan(value)


def _parse_number(value: Any) -> Optional[float]:
    """
    Parse a cell into a float after stripping everything but digits, dot and minus.

    Mirrors a leading-prefix parse: "1.2.3" reads as 1.2, "12-3" as 12.
    Returns None when nothing numeric is left.
    """
    if _is_number(value):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number

    cleaned = _NON_NUMERIC.sub('', str(value))
    match = _LEADING_FLOAT.match(cleaned)
    if not match:
        return None
    return float(match.group(0))


def _round_cents(amount: Decimal) -> Decimal:
    """Round half away from zero to two places."""
    with localcontext() as ctx:
        ctx.prec = 400
        return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def format_currency(value: Any) -> str:
    """Render a value as en-US dollars with two decimals, e.g. "$1,234.50"."""
    if _is_missing(value):
        return EMPTY_CURRENCY

    number = _parse_number(value)
    if number is None:
        return EMPTY_CURRENCY

    amount = _round_cents(Decimal(number))
    if amount == 0:
        return EMPTY_CURRENCY
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):,.2f}"


def format_percent(value: Any) -> str:
    """
    Render a value as a percentage with two decimals.

    The number is taken as the intended percentage magnitude: "0.46" becomes
    "0.46%" and "8.01" becomes "8.01%". No rescaling is ever applied.
    """
    if _is_missing(value):
        return DASH

    number = _parse_number(value)
    if number is None:
        return DASH

    return f"{_round_cents(Decimal(number or 0.0))}%"


def _serial_to_date(serial: float) -> date:
    return (SERIAL_EPOCH + timedelta(days=serial)).date()


def format_date(value: Any) -> str:
    """
    Render a date as MM/DD/YYYY.

    Numbers are spreadsheet day serials; strings are parsed as calendar dates
    and returned unchanged when they cannot be parsed.
    """
    if _is_missing(value) or value == 0 or value is False:
        return DASH

    if isinstance(value, datetime):
        return value.strftime('%m/%d/%Y')
    if isinstance(value, date):
        return value.strftime('%m/%d/%Y')

    if _is_number(value):
        try:
            return _serial_to_date(float(value)).strftime('%m/%d/%Y')
        except (OverflowError, ValueError):
            return str(value)

    text = str(value)
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        try:
            parsed = pd.to_datetime(text.strip(), errors='coerce')
        except (ValueError, TypeError, OverflowError):
            parsed = pd.NaT

    if pd.isna(parsed):
        return text
    return parsed.strftime('%m/%d/%Y')


def clean_number(value: Any) -> float:
    """Numeric value of a cell for aggregate math; anything unusable is 0."""
    if _is_number(value):
        number = float(value)
        return 0.0 if math.isnan(number) or math.isinf(number) else number
    if not value:
        return 0.0

    number = _parse_number(value)
    return 0.0 if number is None else number


def format_plain(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return DASH
    return str(value)


_FORMATTERS = {
    ColumnKind.CURRENCY: format_currency,
    ColumnKind.PERCENT: format_percent,
    ColumnKind.DATE: format_date,
    ColumnKind.PLAIN: format_plain,
}


def column_kind_for(key: str, kinds: Optional[Dict[str, ColumnKind]] = None) -> ColumnKind:
    """Look up the formatter kind for a column key (PLAIN when unknown)."""
    mapping = DEFAULT_COLUMN_KINDS if kinds is None else kinds
    return mapping.get(key, ColumnKind.PLAIN)


def format_cell(kind: ColumnKind, value: Any) -> str:
    """Format one cell with the formatter registered for its column kind."""
    return _FORMATTERS[kind](value)
