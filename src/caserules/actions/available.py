"""
Case available actions.

Availability gates compare a stored case value against a literal or another
case value. The source parameter names a case field; the '@' marker is added
when missing, so "Level" and "@Level" are equivalent.

    CaseValueGreaterEqualThan(Level, 2)
    CaseValueBetween(@Salary, 1000, @MaxSalary?)
"""

from typing import Any, Optional

from caserules.actions.compare import (
    AVAILABLE_POLICY,
    EQUAL,
    GREATER_EQUAL_THAN,
    GREATER_THAN,
    LESS_EQUAL_THAN,
    LESS_THAN,
    NOT_EQUAL,
    CompareOperator,
    compare_between,
    compare_values,
)
from caserules.constants import CATEGORY_COMPARE
from caserules.context import ActionContext, PipelineKind
from caserules.references import ReferenceKind, to_case_value_reference
from caserules.registry import ActionParameter, action
from caserules.values import ValueKind

ALL_KINDS = (ValueKind.STRING, ValueKind.BOOLEAN, ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME)
ORDERED_KINDS = (ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME)

SOURCE = ActionParameter("source", "The source case field",
                         value_kinds=ALL_KINDS, reference_kinds=(ReferenceKind.CASE_VALUE,))
COMPARE_DATE = ActionParameter("compareDate", "The compare date for case values",
                               value_kinds=(ValueKind.DATETIME,), optional=True)


def _source(source: Any) -> Optional[str]:
    if source is None or not str(source).strip():
        return None
    return to_case_value_reference(str(source))


def _compare_action(name: str, compare_operator: CompareOperator, description: str, value_kinds):
    @action(name, PipelineKind.AVAILABLE,
            SOURCE,
            ActionParameter("compare", "The compare value", value_kinds=value_kinds),
            COMPARE_DATE,
            description=description, categories=(CATEGORY_COMPARE,))
    def compare_action(context: ActionContext, source: Any, compare: Any, compare_date: Any = None) -> None:
        compare_values(context, _source(source), compare, compare_operator, compare_date, AVAILABLE_POLICY)

    compare_action.__name__ = name
    return compare_action


case_value_equal = _compare_action(
    "CaseValueEqual", EQUAL, "Validate for equal case value", ALL_KINDS)
case_value_not_equal = _compare_action(
    "CaseValueNotEqual", NOT_EQUAL, "Validate for different value", ALL_KINDS)
case_value_greater_than = _compare_action(
    "CaseValueGreaterThan", GREATER_THAN, "Validate for greater value", ORDERED_KINDS)
case_value_greater_equal_than = _compare_action(
    "CaseValueGreaterEqualThan", GREATER_EQUAL_THAN, "Validate for greater or equal value", ORDERED_KINDS)
case_value_less_than = _compare_action(
    "CaseValueLessThan", LESS_THAN, "Validate for smaller value", ORDERED_KINDS)
case_value_less_equal_than = _compare_action(
    "CaseValueLessEqualThan", LESS_EQUAL_THAN, "Validate for smaller or equal value", ORDERED_KINDS)


@action("CaseValueBetween", PipelineKind.AVAILABLE,
        SOURCE,
        ActionParameter("start", "The range start value", value_kinds=ORDERED_KINDS),
        ActionParameter("end", "The range end value", value_kinds=ORDERED_KINDS),
        COMPARE_DATE,
        categories=(CATEGORY_COMPARE,))
def case_value_between(context: ActionContext, source: Any, start: Any, end: Any, compare_date: Any = None) -> None:
    """Validate range value"""
    compare_between(context, _source(source), start, end, compare_date, AVAILABLE_POLICY)
