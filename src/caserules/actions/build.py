"""
Case build actions.

Build actions derive defaults and limits for the case change. They never gate
the pipeline: a wrong target is recorded as an issue, absent input values are
skipped, and writes violating the period order are dropped.

    MinLimit(0)                              clamp the current field
    SetFieldValue(#Wage, @BaseWage)          write another field
    SetFieldStartEnd(#Contract, @Hired, 2025-12-31)
    SetFieldAttribute(#Wage.FieldAttribute, unit, CHF)
"""

import logging
from typing import Any, Callable

from caserules.action_value import ActionValue
from caserules.constants import (
    CATEGORY_FIELD,
    CATEGORY_FIELD_END,
    CATEGORY_FIELD_START,
    CATEGORY_FIELD_VALUE,
)
from caserules.context import ActionContext, PipelineKind
from caserules.references import (
    ReferenceKind,
    to_case_change_end_reference,
    to_case_change_field_attribute_reference,
    to_case_change_reference,
    to_case_change_start_reference,
    to_case_change_value_attribute_reference,
)
from caserules.registry import ActionParameter, action
from caserules.values import ValueKind

logger = logging.getLogger(__name__)

ALL_KINDS = (ValueKind.STRING, ValueKind.BOOLEAN, ValueKind.INTEGER,
             ValueKind.DECIMAL, ValueKind.DATETIME, ValueKind.TIMESPAN)
LIMIT_KINDS = (ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME)
DATE_KINDS = (ValueKind.DATETIME,)

TARGET = ActionParameter("target", "The target field", reference_kinds=(ReferenceKind.CASE_CHANGE,))
VALUE = ActionParameter("value", "The value to set", value_kinds=ALL_KINDS)
START = ActionParameter("start", "The start date", value_kinds=DATE_KINDS)
END = ActionParameter("end", "The end date", value_kinds=DATE_KINDS)
ATTRIBUTE_NAME = ActionParameter("attributeName", "The attribute name", value_kinds=(ValueKind.STRING,))
ATTRIBUTE_VALUE = ActionParameter("value", "The attribute value, omit to remove the attribute",
                                  value_kinds=ALL_KINDS, optional=True)


def is_change_target(value: ActionValue) -> bool:
    """Case change reference to a value, start or end (no attribute)."""
    return value.is_case_change_reference and not value.value_source.is_attribute


def is_known_field(context: ActionContext, field_name: str) -> bool:
    if context.host.get_value_type(field_name) is None:
        logger.warning(f"{context.pipeline.value}: ignored write to unknown case field {field_name}")
        return False
    return True


# =============================================================================
# CHANGE WRITERS
# =============================================================================
# Shared by the build and relation build actions

def apply_value(context: ActionContext, field_name: str, value: Any) -> bool:
    """
    Write a value to the case change of a field.

    The value is resolved to the field value kind; unresolved values are skipped.

    Returns:
        True if the value was written.
    """
    if not is_known_field(context, field_name):
        return False
    kind = context.host.get_value_type(field_name)
    target_value = ActionValue.resolve(context, value, kind)
    if not target_value.is_fulfilled:
        logger.debug(f"Skip value {value!r} for {field_name}: {target_value.state.value}")
        return False
    context.host.set_change_value(field_name, target_value.resolved_value)
    return True


def apply_start(context: ActionContext, field_name: str, start: Any) -> bool:
    """Write the change start, only if it is before an existing end."""
    if not is_known_field(context, field_name):
        return False
    start_value = ActionValue.resolve(context, start, ValueKind.DATETIME)
    if not start_value.is_fulfilled:
        return False
    end = context.host.get_change_target(field_name).end
    if end is not None and start_value.resolved_value >= end:
        logger.debug(f"Drop start {start_value.resolved_value} for {field_name}: not before end {end}")
        return False
    context.host.set_change_start(field_name, start_value.resolved_value)
    return True


def apply_end(context: ActionContext, field_name: str, end: Any) -> bool:
    """Write the change end, only if it is after an existing start."""
    if not is_known_field(context, field_name):
        return False
    end_value = ActionValue.resolve(context, end, ValueKind.DATETIME)
    if not end_value.is_fulfilled:
        return False
    start = context.host.get_change_target(field_name).start
    if start is not None and end_value.resolved_value <= start:
        logger.debug(f"Drop end {end_value.resolved_value} for {field_name}: not after start {start}")
        return False
    context.host.set_change_end(field_name, end_value.resolved_value)
    return True


def apply_start_end(context: ActionContext, field_name: str, start: Any, end: Any) -> bool:
    """Write both period bounds; the earlier date becomes the start."""
    if not is_known_field(context, field_name):
        return False
    start_value = ActionValue.resolve(context, start, ValueKind.DATETIME)
    end_value = ActionValue.resolve(context, end, ValueKind.DATETIME)
    if not start_value.is_fulfilled or not end_value.is_fulfilled:
        return False
    first, second = start_value.resolved_value, end_value.resolved_value
    context.host.set_change_start(field_name, min(first, second))
    context.host.set_change_end(field_name, max(first, second))
    return True


def _target_field(context: ActionContext, target: Any) -> ActionValue:
    return ActionValue.resolve(context, target)


# =============================================================================
# LIMITS
# =============================================================================

def _apply_limit(context: ActionContext, bound: Any, violated: Callable[[Any, Any], bool]) -> None:
    """
    Replace the current field value with a bound.

    Numbers are replaced when the bound is violated. Dates are replaced
    whenever they differ from the bound.
    """
    field_name = context.case_field_name
    kind = context.host.get_value_type(field_name)
    if kind not in LIMIT_KINDS:
        return
    source_value = ActionValue.resolve(context, to_case_change_reference(field_name), kind)
    bound_value = ActionValue.resolve(context, bound, kind)
    if not source_value.is_fulfilled or not bound_value.is_fulfilled:
        return

    if kind == ValueKind.DATETIME:
        replace = source_value.resolved_value != bound_value.resolved_value
    else:
        replace = violated(source_value.resolved_value, bound_value.resolved_value)
    if replace:
        logger.debug(f"Limit {field_name}: {source_value.resolved_value} -> {bound_value.resolved_value}")
        context.host.set_change_value(field_name, bound_value.resolved_value)


@action("MinLimit", PipelineKind.BUILD,
        ActionParameter("minimum", "The minimum value", value_kinds=LIMIT_KINDS),
        categories=(CATEGORY_FIELD_VALUE,), field_scoped=True)
def min_limit(context: ActionContext, minimum: Any) -> None:
    """Ensure lower limits"""
    _apply_limit(context, minimum, lambda value, bound: value < bound)


@action("MaxLimit", PipelineKind.BUILD,
        ActionParameter("maximum", "The maximum value", value_kinds=LIMIT_KINDS),
        categories=(CATEGORY_FIELD_VALUE,), field_scoped=True)
def max_limit(context: ActionContext, maximum: Any) -> None:
    """Ensure higher limits"""
    _apply_limit(context, maximum, lambda value, bound: value > bound)


@action("Limit", PipelineKind.BUILD,
        ActionParameter("minimum", "The minimum value", value_kinds=LIMIT_KINDS),
        ActionParameter("maximum", "The maximum value", value_kinds=LIMIT_KINDS),
        categories=(CATEGORY_FIELD_VALUE,), field_scoped=True)
def limit(context: ActionContext, minimum: Any, maximum: Any) -> None:
    """Ensure value range"""
    min_limit(context, minimum)
    max_limit(context, maximum)


# =============================================================================
# FIELD SETTERS
# =============================================================================

@action("SetFieldValue", PipelineKind.BUILD, TARGET, VALUE,
        categories=(CATEGORY_FIELD_VALUE,))
def set_field_value(context: ActionContext, target: Any, value: Any) -> None:
    """Set the case change field value"""
    target_value = _target_field(context, target)
    if not is_change_target(target_value):
        context.add_issue(f"Invalid target field reference {target}")
        return
    apply_value(context, target_value.reference_field, value)


@action("SetFieldStart", PipelineKind.BUILD, TARGET, START,
        categories=(CATEGORY_FIELD_START,))
def set_field_start(context: ActionContext, target: Any, start: Any) -> None:
    """Set the case field change start date"""
    target_value = _target_field(context, target)
    if not is_change_target(target_value):
        context.add_issue(f"Invalid target field reference {target}")
        return
    apply_start(context, target_value.reference_field, start)


@action("SetFieldEnd", PipelineKind.BUILD, TARGET, END,
        categories=(CATEGORY_FIELD_END,))
def set_field_end(context: ActionContext, target: Any, end: Any) -> None:
    """Set the case field change end date"""
    target_value = _target_field(context, target)
    if not is_change_target(target_value):
        context.add_issue(f"Invalid target field reference {target}")
        return
    apply_end(context, target_value.reference_field, end)


@action("SetFieldStartEnd", PipelineKind.BUILD, TARGET, START, END,
        categories=(CATEGORY_FIELD_START, CATEGORY_FIELD_END))
def set_field_start_end(context: ActionContext, target: Any, start: Any, end: Any) -> None:
    """Set the case field change start and end date"""
    target_value = _target_field(context, target)
    if not is_change_target(target_value):
        context.add_issue(f"Invalid target field reference {target}")
        return
    apply_start_end(context, target_value.reference_field, start, end)


def _apply_attribute(context: ActionContext, target: Any, attribute_name: Any, value: Any,
                     field_attribute: bool) -> None:
    target_value = _target_field(context, target)
    valid = target_value.is_case_field_attribute if field_attribute else target_value.is_case_value_attribute
    if not valid:
        context.add_issue(f"Invalid target attribute reference {target}")
        return
    name_value = ActionValue.resolve(context, attribute_name, ValueKind.STRING)
    name = name_value.resolved_value
    if not name or not name.strip():
        context.add_issue(f"Invalid attribute {attribute_name}")
        return
    field_name = target_value.reference_field
    if not is_known_field(context, field_name):
        return

    host = context.host
    attribute_value = ActionValue.resolve(context, value) if value is not None else None
    if attribute_value is None or not attribute_value.is_fulfilled:
        if field_attribute:
            host.remove_field_attribute(field_name, name)
        else:
            host.remove_value_attribute(field_name, name)
        return
    if field_attribute:
        host.set_field_attribute(field_name, name, attribute_value.resolved_value)
    else:
        host.set_value_attribute(field_name, name, attribute_value.resolved_value)


@action("SetFieldAttribute", PipelineKind.BUILD,
        ActionParameter("target", "The target field attribute",
                        reference_kinds=(ReferenceKind.CASE_FIELD_ATTRIBUTE,)),
        ATTRIBUTE_NAME, ATTRIBUTE_VALUE,
        categories=(CATEGORY_FIELD,))
def set_field_attribute(context: ActionContext, target: Any, attribute_name: Any, value: Any = None) -> None:
    """Set the case field attribute value"""
    _apply_attribute(context, target, attribute_name, value, field_attribute=True)


@action("SetFieldValueAttribute", PipelineKind.BUILD,
        ActionParameter("target", "The target value attribute",
                        reference_kinds=(ReferenceKind.CASE_VALUE_ATTRIBUTE,)),
        ATTRIBUTE_NAME, ATTRIBUTE_VALUE,
        categories=(CATEGORY_FIELD_VALUE,))
def set_field_value_attribute(context: ActionContext, target: Any, attribute_name: Any, value: Any = None) -> None:
    """Set the case value attribute value"""
    _apply_attribute(context, target, attribute_name, value, field_attribute=False)


# =============================================================================
# CURRENT FIELD SETTERS
# =============================================================================

@action("SetValue", PipelineKind.BUILD, VALUE,
        categories=(CATEGORY_FIELD_VALUE,), field_scoped=True)
def set_value(context: ActionContext, value: Any) -> None:
    """Set the case change value"""
    set_field_value(context, to_case_change_reference(context.case_field_name), value)


@action("SetStart", PipelineKind.BUILD, START,
        categories=(CATEGORY_FIELD_START,), field_scoped=True)
def set_start(context: ActionContext, start: Any) -> None:
    """Set the case change start date"""
    set_field_start(context, to_case_change_start_reference(context.case_field_name), start)


@action("SetEnd", PipelineKind.BUILD, END,
        categories=(CATEGORY_FIELD_END,), field_scoped=True)
def set_end(context: ActionContext, end: Any) -> None:
    """Set the case change end date"""
    set_field_end(context, to_case_change_end_reference(context.case_field_name), end)


@action("SetStartEnd", PipelineKind.BUILD, START, END,
        categories=(CATEGORY_FIELD_START, CATEGORY_FIELD_END), field_scoped=True)
def set_start_end(context: ActionContext, start: Any, end: Any) -> None:
    """Set the case change start and end date"""
    set_field_start_end(context, to_case_change_start_reference(context.case_field_name), start, end)


@action("SetAttribute", PipelineKind.BUILD, ATTRIBUTE_NAME, ATTRIBUTE_VALUE,
        categories=(CATEGORY_FIELD,), field_scoped=True)
def set_attribute(context: ActionContext, attribute_name: Any, value: Any = None) -> None:
    """Set the case change field attribute value"""
    set_field_attribute(context, to_case_change_field_attribute_reference(context.case_field_name),
                        attribute_name, value)


@action("SetValueAttribute", PipelineKind.BUILD, ATTRIBUTE_NAME, ATTRIBUTE_VALUE,
        categories=(CATEGORY_FIELD_VALUE,), field_scoped=True)
def set_value_attribute(context: ActionContext, attribute_name: Any, value: Any = None) -> None:
    """Set the case value attribute value"""
    set_field_value_attribute(context, to_case_change_value_attribute_reference(context.case_field_name),
                              attribute_name, value)
