"""
Comparison core shared by the compare actions of all pipelines.

A comparison resolves the source first, takes its value kind, and resolves the
compare side into the same kind before applying the operator:

    1. blank source                      -> issue
    2. source not a (case value) reference -> issue
    3. source without value              -> issue if mandatory, else silent pass
    4. compare side unresolved           -> issue
    5. operator violated                 -> issue naming both operands

Available and relation pipelines report plain-text issues, the validate
pipeline reports coded issues. Ordering operators only apply to Integer,
Decimal and DateTime values.
"""

import logging
import operator
from dataclasses import dataclass
from typing import Any, Callable, Optional

from caserules.action_value import ActionValue
from caserules.context import ActionContext
from caserules.values import ValueKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompareOperator:
    """A comparison and the issue it raises on violation."""
    name: str
    violated: Callable[[Any, Any], bool]
    message: str
    code: str
    ordered: bool = True


EQUAL = CompareOperator("Equal", operator.ne, "is not equal", "CompareValueNotEqual", ordered=False)
NOT_EQUAL = CompareOperator("NotEqual", operator.eq, "is equal", "CompareValueEqual", ordered=False)
GREATER_THAN = CompareOperator("GreaterThan", operator.le, "is less/equal than", "CompareValueLessEqual")
GREATER_EQUAL_THAN = CompareOperator("GreaterEqualThan", operator.lt, "is less than", "CompareValueLess")
LESS_THAN = CompareOperator("LessThan", operator.ge, "is greater/equal than", "CompareValueGreaterEqual")
LESS_EQUAL_THAN = CompareOperator("LessEqualThan", operator.gt, "is greater than", "CompareValueGreater")

OPERATORS = {op.name: op for op in (
    EQUAL, NOT_EQUAL, GREATER_THAN, GREATER_EQUAL_THAN, LESS_THAN, LESS_EQUAL_THAN,
)}


@dataclass(frozen=True)
class ComparePolicy:
    """
    Pipeline specific compare rules.

    Attributes:
        coded: Report coded issues instead of plain text.
        case_value_source: The source must be a case value reference ('@').
        change_compare: The compare side may reference the case change ('#').
    """
    coded: bool
    case_value_source: bool
    change_compare: bool


AVAILABLE_POLICY = ComparePolicy(coded=False, case_value_source=True, change_compare=False)
VALIDATE_POLICY = ComparePolicy(coded=True, case_value_source=False, change_compare=True)
RELATION_POLICY = ComparePolicy(coded=False, case_value_source=False, change_compare=False)


# =============================================================================
# COMPARISON
# =============================================================================

def compare_values(
    context: ActionContext,
    source: Any,
    compare: Any,
    compare_operator: CompareOperator,
    compare_date: Any = None,
    policy: ComparePolicy = VALIDATE_POLICY,
) -> None:
    """
    Compare a source reference against a compare value.

    Args:
        context: The action context, receives the issues.
        source: Source reference.
        compare: Literal or reference compared to the source.
        compare_operator: The comparison to apply.
        compare_date: Optional date for case value lookups of the compare side.
        policy: Pipeline compare rules.
    """
    subject = context.case_field_name or source
    if source is None or not str(source).strip():
        _issue(context, policy, "Missing compare source", "CompareInvalidSourceValue", subject, source)
        return

    source_value = ActionValue.resolve(context, source)
    valid_source = source_value.is_case_value_reference if policy.case_value_source else source_value.is_reference
    if not valid_source:
        _issue(context, policy, f"Invalid compare source value: {source}",
               "CompareInvalidSourceValue", subject, source)
        return

    # optional compare
    if not source_value.is_fulfilled:
        if source_value.mandatory_field:
            _issue(context, policy, f"Missing compare source value: {source}",
                   "CompareMissingSourceValue", subject, source)
        return

    source_kind = source_value.value_type
    value_date = resolve_compare_date(context, compare_date)
    compare_value = ActionValue.resolve(context, compare, source_kind, value_date)
    if not compare_value.is_fulfilled or (
            compare_value.is_case_change_reference and not policy.change_compare):
        _issue(context, policy, f"Invalid compare value: {compare}",
               "CompareInvalidCompareValue", subject, compare)
        return

    if compare_operator.ordered and (source_kind is None or not source_kind.is_ordered):
        logger.debug(f"{compare_operator.name}: no ordering for {source_kind} values of {source}")
        return

    if compare_operator.violated(source_value.resolved_value, compare_value.resolved_value):
        if policy.coded:
            context.add_coded_issue(compare_operator.code, source_value, compare_value)
        else:
            context.add_issue(f"{source_value} {compare_operator.message} {compare_value}")


def compare_between(
    context: ActionContext,
    source: Any,
    start: Any,
    end: Any,
    compare_date: Any = None,
    policy: ComparePolicy = VALIDATE_POLICY,
) -> None:
    """Range check: greater/equal start, then less/equal end only if the first check passed."""
    issue_count = len(context.issues)
    compare_values(context, source, start, GREATER_EQUAL_THAN, compare_date, policy)
    if len(context.issues) == issue_count:
        compare_values(context, source, end, LESS_EQUAL_THAN, compare_date, policy)


def check_boolean(
    context: ActionContext,
    source: Any,
    expected: bool,
    compare_date: Any = None,
    policy: ComparePolicy = VALIDATE_POLICY,
) -> None:
    """Check a boolean source for the expected value."""
    source_value = ActionValue.resolve(
        context, source, ValueKind.BOOLEAN, resolve_compare_date(context, compare_date))
    if not source_value.is_fulfilled:
        _issue(context, policy, f"Invalid compare source {source_value}", "CompareInvalidSource", source_value)
    elif source_value.resolved_value != expected:
        expectation = "true" if expected else "false"
        code = "CompareValueNotTrue" if expected else "CompareValueNotFalse"
        _issue(context, policy, f"{source_value} is not {expectation}", code, source_value)


def resolve_compare_date(context: ActionContext, compare_date: Any) -> Optional[Any]:
    """Resolve an optional compare date parameter (None when absent or unresolved)."""
    if compare_date is None:
        return None
    return ActionValue.resolve(context, compare_date, ValueKind.DATETIME).resolved_value


def _issue(context: ActionContext, policy: ComparePolicy, message: str, code: str, *args: Any) -> None:
    if policy.coded:
        context.add_coded_issue(code, *args)
    else:
        context.add_issue(message)
