"""
Value methods applied to resolved references.

A reference may end with a method call evaluated on the resolved value:

    "@Salary.Value.Round()"
    "@Hours.Value.Limit(0, 40)"
    "#Contract.Start.AddMonths(3)"
    "@Employee.Period.TotalDays()"

Methods are registered per input ValueKind with a declared result kind, so the
value type of an action value is known before the method runs. Method
parameters are resolved through a callback and may themselves be references.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_EVEN, Decimal
from typing import Any, Callable, Dict, List, Tuple

import pandas as pd

from caserules.expressions import parse_call
from caserules.references import ReferenceSyntaxError
from caserules.values import ValueKind, coerce, format_value

# Resolves one raw method parameter to a typed value (None when unresolved)
ParameterResolver = Callable[[str, ValueKind], Any]


@dataclass(frozen=True)
class ValueMethod:
    """A named method on values of one kind."""
    name: str
    input_kind: ValueKind
    result_kind: ValueKind
    parameter_kinds: Tuple[ValueKind, ...]
    evaluate: Callable[..., Any]


METHOD_REGISTRY: Dict[ValueKind, Dict[str, ValueMethod]] = {kind: {} for kind in ValueKind}


def register_method(input_kind: ValueKind, name: str, result_kind: ValueKind,
                    evaluate: Callable[..., Any], *parameter_kinds: ValueKind) -> ValueMethod:
    """Register a value method; duplicate names per kind are rejected."""
    methods = METHOD_REGISTRY[input_kind]
    if name in methods:
        raise ValueError(f"Duplicated value method {input_kind.value}.{name}")
    method = ValueMethod(name, input_kind, result_kind, tuple(parameter_kinds), evaluate)
    methods[name] = method
    return method


def get_method(kind: ValueKind, expression: str) -> Tuple[ValueMethod, List[str]]:
    """
    Look up the method of a method expression.

    Raises:
        ReferenceSyntaxError: For unknown methods or a wrong parameter count.
    """
    name, parameters = parse_call(expression)
    method = METHOD_REGISTRY.get(kind, {}).get(name)
    if method is None:
        raise ReferenceSyntaxError(expression, f"unknown {kind.value} method {name}")
    if len(parameters) != len(method.parameter_kinds):
        raise ReferenceSyntaxError(
            expression,
            f"method {name} expects {len(method.parameter_kinds)} parameters, got {len(parameters)}",
        )
    return method, parameters


def evaluate_method(expression: str, kind: ValueKind, value: Any,
                    resolve_parameter: ParameterResolver) -> Any:
    """
    Evaluate a method expression on a value.

    Args:
        expression: Method call, e.g. "Limit(0, 40)".
        kind: Kind of the input value.
        value: The resolved input value.
        resolve_parameter: Callback resolving raw parameters.

    Returns:
        The method result, or None if the input or a parameter is unresolved.
    """
    method, parameters = get_method(kind, expression)
    if value is None:
        return None
    arguments = []
    for raw, parameter_kind in zip(parameters, method.parameter_kinds):
        argument = resolve_parameter(raw, parameter_kind)
        if argument is None:
            return None
        arguments.append(argument)
    try:
        return method.evaluate(value, *arguments)
    except (ArithmeticError, ValueError, OverflowError):
        return None


# =============================================================================
# HELPERS
# =============================================================================

def _limit(value, minimum, maximum):
    if value < minimum:
        return minimum
    if value > maximum:
        return maximum
    return value


def _round_step(value: Decimal, step: Decimal, rounding: str) -> Decimal:
    if step == 0:
        return value
    return (value / step).to_integral_value(rounding=rounding) * step


def _add_months(value: datetime, months: int) -> datetime:
    return (pd.Timestamp(value) + pd.DateOffset(months=months)).to_pydatetime()


def _total(span: timedelta, unit: timedelta) -> Decimal:
    return Decimal(str(span / unit))


# =============================================================================
# METHOD TABLES
# =============================================================================

B, I, D, S, T, P = (
    ValueKind.BOOLEAN, ValueKind.INTEGER, ValueKind.DECIMAL,
    ValueKind.STRING, ValueKind.DATETIME, ValueKind.TIMESPAN,
)

# boolean
register_method(B, "Negate", B, lambda v: not v)

# integer
register_method(I, "IsNegative", B, lambda v: v < 0)
register_method(I, "IsZero", B, lambda v: v == 0)
register_method(I, "IsPositive", B, lambda v: v > 0)
register_method(I, "Negate", I, lambda v: -v)
register_method(I, "Add", I, lambda v, x: v + x, I)
register_method(I, "Subtract", I, lambda v, x: v - x, I)
register_method(I, "Min", I, lambda v, x: x if v < x else v, I)
register_method(I, "Max", I, lambda v, x: x if v > x else v, I)
register_method(I, "Limit", I, _limit, I, I)
register_method(I, "ToDecimal", D, lambda v: Decimal(v))
register_method(I, "ToString", S, str)

# decimal
register_method(D, "IsNegative", B, lambda v: v < 0)
register_method(D, "IsZero", B, lambda v: v == 0)
register_method(D, "IsPositive", B, lambda v: v > 0)
register_method(D, "IsFraction", B, lambda v: v != Decimal(math.trunc(v)))
register_method(D, "Negate", D, lambda v: -v)
register_method(D, "Add", D, lambda v, x: v + x, D)
register_method(D, "Subtract", D, lambda v, x: v - x, D)
register_method(D, "Multiply", D, lambda v, x: v * x, D)
register_method(D, "Divide", D, lambda v, x: v / x, D)
register_method(D, "Min", D, lambda v, x: x if v < x else v, D)
register_method(D, "Max", D, lambda v, x: x if v > x else v, D)
register_method(D, "Limit", D, _limit, D, D)
register_method(D, "Round", D, lambda v: v.to_integral_value(rounding=ROUND_HALF_EVEN))
register_method(D, "RoundUp", D, lambda v, step: _round_step(v, step, ROUND_CEILING), D)
register_method(D, "RoundDown", D, lambda v, step: _round_step(v, step, ROUND_FLOOR), D)
register_method(D, "Truncate", D, lambda v: Decimal(math.trunc(v)))
register_method(D, "ToInteger", I, lambda v: int(v.to_integral_value(rounding=ROUND_HALF_EVEN)))
register_method(D, "ToString", S, format_value)

# string
register_method(S, "IsEmpty", B, lambda v: not v.strip())
register_method(S, "Contains", B, lambda v, x: x in v, S)
register_method(S, "StartsWith", B, lambda v, x: v.startswith(x), S)
register_method(S, "EndsWith", B, lambda v, x: v.endswith(x), S)
register_method(S, "Length", I, len)
register_method(S, "Trim", S, lambda v: v.strip())
register_method(S, "ToUpper", S, lambda v: v.upper())
register_method(S, "ToLower", S, lambda v: v.lower())
register_method(S, "Append", S, lambda v, x: v + x, S)
register_method(S, "Replace", S, lambda v, old, new: v.replace(old, new), S, S)
register_method(S, "ToInteger", I, lambda v: coerce(v, I))
register_method(S, "ToDecimal", D, lambda v: coerce(v, D))
register_method(S, "ToDateTime", T, lambda v: coerce(v, T))

# date time
register_method(T, "IsDate", B, lambda v: v == datetime(v.year, v.month, v.day))
register_method(T, "Date", T, lambda v: datetime(v.year, v.month, v.day))
register_method(T, "Year", I, lambda v: v.year)
register_method(T, "Month", I, lambda v: v.month)
register_method(T, "Day", I, lambda v: v.day)
register_method(T, "AddDays", T, lambda v, n: v + timedelta(days=n), I)
register_method(T, "AddMonths", T, _add_months, I)
register_method(T, "AddYears", T, lambda v, n: _add_months(v, n * 12), I)

# time span
register_method(P, "IsZero", B, lambda v: v == timedelta(0))
register_method(P, "IsPositive", B, lambda v: v >= timedelta(0))
register_method(P, "IsNegative", B, lambda v: v < timedelta(0))
register_method(P, "Negate", P, lambda v: -v)
register_method(P, "TotalDays", D, lambda v: _total(v, timedelta(days=1)))
register_method(P, "TotalHours", D, lambda v: _total(v, timedelta(hours=1)))
