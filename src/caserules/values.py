"""
Value Model: typed case values.

This module defines the closed set of runtime value kinds a case field can hold
and the conversions between raw inputs (configuration strings, Python
primitives, host values) and those kinds.

Kinds:
    String    -> str
    Boolean   -> bool
    Integer   -> int
    Decimal   -> decimal.Decimal
    DateTime  -> datetime.datetime (naive, UTC)
    TimeSpan  -> datetime.timedelta

Coercion never raises: an input that cannot be represented in the requested
kind yields None, and the caller decides whether that is an issue.
"""

from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

import numpy as np
import pandas as pd


class ValueKind(Enum):
    """Runtime value kinds of case fields and action values."""
    STRING = "String"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    DECIMAL = "Decimal"
    DATETIME = "DateTime"
    TIMESPAN = "TimeSpan"

    @property
    def is_ordered(self) -> bool:
        """Kinds supporting the ordering comparisons (<, <=, >, >=)."""
        return self in ORDERED_KINDS

    @classmethod
    def from_name(cls, name: str) -> Optional["ValueKind"]:
        """
        Look up a kind by its configuration name.

        Accepts the enum value ("Integer") and the short descriptor aliases
        ("Int", "Dec", "Date", "Bool").

        Returns:
            The matching ValueKind, or None when the name is unknown.
        """
        if not name:
            return None
        key = name.strip()
        for kind in cls:
            if kind.value == key:
                return kind
        return KIND_ALIASES.get(key)


ORDERED_KINDS = frozenset({ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME})

KIND_ALIASES = {
    "Int": ValueKind.INTEGER,
    "Dec": ValueKind.DECIMAL,
    "Date": ValueKind.DATETIME,
    "Bool": ValueKind.BOOLEAN,
    "Time": ValueKind.TIMESPAN,
}


# =============================================================================
# KIND INFERENCE
# =============================================================================

def infer_kind(value: Any) -> Optional[ValueKind]:
    """
    Infer the ValueKind of a Python value.

    bool is tested before int since bool is an int subclass.
    """
    value = _unwrap(value)
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, (Decimal, float)):
        return ValueKind.DECIMAL
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (datetime, date)):
        return ValueKind.DATETIME
    if isinstance(value, timedelta):
        return ValueKind.TIMESPAN
    return None


# =============================================================================
# COERCION
# =============================================================================

def coerce(value: Any, kind: Optional[ValueKind]) -> Any:
    """
    Coerce a raw value into the representation of a ValueKind.

    Args:
        value: Raw input (configuration string, primitive or host value).
        kind: Target kind. None keeps the value as is.

    Returns:
        The converted value, or None if the value is absent or not convertible.
    """
    value = _unwrap(value)
    if value is None:
        return None
    if kind is None:
        return value
    converter = _CONVERTERS[kind]
    return converter(value)


def _to_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    return format_value(value)


def _to_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    return None


def _to_integer(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (Decimal, float)):
        number = _to_decimal(value)
        if number is None:
            return None
        return int(number.to_integral_value(rounding=ROUND_HALF_EVEN))
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, pd.Timestamp):
        return _naive_utc(value)
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            stamp = pd.to_datetime(text)
        except (ValueError, TypeError, OverflowError):
            return None
        if pd.isna(stamp):
            return None
        return _naive_utc(stamp)
    return None


def _naive_utc(stamp: pd.Timestamp) -> datetime:
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp.to_pydatetime()


def _to_timespan(value: Any) -> Optional[timedelta]:
    if isinstance(value, pd.Timedelta):
        return value.to_pytimedelta()
    if isinstance(value, timedelta):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            span = pd.to_timedelta(text)
        except (ValueError, TypeError, OverflowError):
            return None
        if pd.isna(span):
            return None
        return span.to_pytimedelta()
    return None


_CONVERTERS = {
    ValueKind.STRING: _to_string,
    ValueKind.BOOLEAN: _to_boolean,
    ValueKind.INTEGER: _to_integer,
    ValueKind.DECIMAL: _to_decimal,
    ValueKind.DATETIME: _to_datetime,
    ValueKind.TIMESPAN: _to_timespan,
}


# =============================================================================
# FORMATTING
# =============================================================================

def format_value(value: Any) -> str:
    """
    Format a value for issue messages.

    Dates at midnight render as YYYY-MM-DD, other moments as YYYY-MM-DD HH:MM.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.hour == 0 and value.minute == 0 and value.second == 0 and value.microsecond == 0:
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return str(value)


def _unwrap(value: Any) -> Any:
    """Convert numpy scalars to Python values and missing markers to None."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is pd.NaT:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    return value
