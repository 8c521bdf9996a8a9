"""
Case relation actions.

Relation actions run against a RelationCase: case value references ('@') read
the source case, case change references ('#') address the target case change.
Relation validation reports plain-text issues, like availability.
"""

from typing import Any, Callable, Optional

from caserules.action_value import ActionValue
from caserules.actions.build import apply_end, apply_start, apply_start_end, apply_value, is_change_target
from caserules.actions.compare import (
    EQUAL,
    GREATER_EQUAL_THAN,
    GREATER_THAN,
    LESS_EQUAL_THAN,
    LESS_THAN,
    NOT_EQUAL,
    RELATION_POLICY,
    CompareOperator,
    check_boolean,
    compare_between,
    compare_values,
)
from caserules.constants import (
    CATEGORY_COMPARE,
    CATEGORY_FIELD_END,
    CATEGORY_FIELD_START,
    CATEGORY_FIELD_VALUE,
    CATEGORY_RELATION_FIELD,
    CATEGORY_VALIDATE,
)
from caserules.context import ActionContext, PipelineKind
from caserules.references import ReferenceKind
from caserules.registry import ActionParameter, action
from caserules.values import ValueKind

ALL_KINDS = (ValueKind.STRING, ValueKind.BOOLEAN, ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME)
ORDERED_KINDS = (ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME)
DATE_KINDS = (ValueKind.DATETIME,)

TARGET = ActionParameter("target", "The target field", reference_kinds=(ReferenceKind.CASE_CHANGE,))
START = ActionParameter("start", "The start date", value_kinds=DATE_KINDS)
END = ActionParameter("end", "The end date", value_kinds=DATE_KINDS)
SOURCE = ActionParameter("source", "The source value", value_kinds=ALL_KINDS,
                         reference_kinds=(ReferenceKind.CASE_VALUE, ReferenceKind.CASE_CHANGE))
COMPARE_DATE = ActionParameter("compareDate", "The compare date for case values",
                               value_kinds=DATE_KINDS, optional=True)


# =============================================================================
# RELATION BUILD
# =============================================================================

def _target_field(context: ActionContext, target: Any, invalid_message: str) -> Optional[str]:
    """Target field name of a case change reference, None after recording an issue."""
    target_value = ActionValue.resolve(context, target)
    if not is_change_target(target_value):
        context.add_issue(f"{invalid_message} {target}")
        return None
    if target_value.reference_field not in context.host.list_fields():
        context.add_issue(f"Unknown target field {target}")
        return None
    return target_value.reference_field


@action("SetTargetFieldValue", PipelineKind.RELATION_BUILD,
        TARGET, ActionParameter("value", "The value to set", value_kinds=ALL_KINDS + (ValueKind.TIMESPAN,)),
        categories=(CATEGORY_RELATION_FIELD, CATEGORY_FIELD_VALUE))
def set_target_field_value(context: ActionContext, target: Any, value: Any) -> None:
    """Set the case relation target field value"""
    field_name = _target_field(context, target, "Invalid target field")
    if field_name is not None:
        apply_value(context, field_name, value)


@action("SetTargetFieldStart", PipelineKind.RELATION_BUILD, TARGET, START,
        categories=(CATEGORY_RELATION_FIELD, CATEGORY_FIELD_START))
def set_target_field_start(context: ActionContext, target: Any, start: Any) -> None:
    """Set the case relation target field change start date"""
    field_name = _target_field(context, target, "Invalid target field reference")
    if field_name is not None:
        apply_start(context, field_name, start)


@action("SetTargetFieldEnd", PipelineKind.RELATION_BUILD, TARGET, END,
        categories=(CATEGORY_RELATION_FIELD, CATEGORY_FIELD_END))
def set_target_field_end(context: ActionContext, target: Any, end: Any) -> None:
    """Set the case relation target field change end date"""
    field_name = _target_field(context, target, "Invalid target field reference")
    if field_name is not None:
        apply_end(context, field_name, end)


@action("SetTargetFieldStartEnd", PipelineKind.RELATION_BUILD, TARGET, START, END,
        categories=(CATEGORY_RELATION_FIELD, CATEGORY_FIELD_START, CATEGORY_FIELD_END))
def set_target_field_start_end(context: ActionContext, target: Any, start: Any, end: Any) -> None:
    """Set the case relation target field change start and end date"""
    field_name = _target_field(context, target, "Invalid target field reference")
    if field_name is not None:
        apply_start_end(context, field_name, start, end)


# =============================================================================
# RELATION VALIDATE
# =============================================================================

@action("IsTrue", PipelineKind.RELATION_VALIDATE, SOURCE, COMPARE_DATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE))
def is_true(context: ActionContext, source: Any, compare_date: Any = None) -> None:
    """Validate for true value"""
    check_boolean(context, source, True, compare_date, RELATION_POLICY)


@action("IsFalse", PipelineKind.RELATION_VALIDATE, SOURCE, COMPARE_DATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE))
def is_false(context: ActionContext, source: Any, compare_date: Any = None) -> None:
    """Validate for false value"""
    check_boolean(context, source, False, compare_date, RELATION_POLICY)


def _compare_action(name: str, compare_operator: CompareOperator, description: str) -> Callable[..., None]:
    value_kinds = ORDERED_KINDS if compare_operator.ordered else ALL_KINDS

    @action(name, PipelineKind.RELATION_VALIDATE,
            SOURCE,
            ActionParameter("compare", "The compare value", value_kinds=value_kinds),
            COMPARE_DATE,
            description=description, categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE))
    def compare_action(context: ActionContext, source: Any, compare: Any, compare_date: Any = None) -> None:
        compare_values(context, source, compare, compare_operator, compare_date, RELATION_POLICY)

    compare_action.__name__ = name
    return compare_action


equal = _compare_action("Equal", EQUAL, "Validate for equal value")
not_equal = _compare_action("NotEqual", NOT_EQUAL, "Validate for different value")
greater_than = _compare_action("GreaterThan", GREATER_THAN, "Validate for greater value")
greater_equal_than = _compare_action("GreaterEqualThan", GREATER_EQUAL_THAN, "Validate for greater or equal value")
less_than = _compare_action("LessThan", LESS_THAN, "Validate for smaller value")
less_equal_than = _compare_action("LessEqualThan", LESS_EQUAL_THAN, "Validate for smaller or equal value")


@action("Between", PipelineKind.RELATION_VALIDATE,
        SOURCE,
        ActionParameter("start", "The range start value", value_kinds=ORDERED_KINDS),
        ActionParameter("end", "The range end value", value_kinds=ORDERED_KINDS),
        COMPARE_DATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE))
def between(context: ActionContext, source: Any, start: Any, end: Any, compare_date: Any = None) -> None:
    """Validate range value"""
    compare_between(context, source, start, end, compare_date, RELATION_POLICY)
