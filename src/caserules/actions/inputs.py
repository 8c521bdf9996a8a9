"""
Field input actions.

Build shortcuts maintaining the input.* field attributes read by input front
ends, registered in the Input namespace ("Input.HideField(Wage)"). The field
parameter is a field name or a field reference ("Wage", "#Wage"); unknown
fields are ignored.
"""

import logging
from typing import Any, Optional

from caserules.action_value import ActionValue
from caserules.constants import (
    CATEGORY_FIELD,
    CATEGORY_FIELD_END,
    CATEGORY_FIELD_INPUT,
    CATEGORY_FIELD_START,
    CATEGORY_FIELD_VALUE,
    INPUT_END_READ_ONLY,
    INPUT_HIDDEN,
    INPUT_HIDDEN_DESCRIPTION,
    INPUT_NAMESPACE,
    INPUT_START_READ_ONLY,
    INPUT_VALUE_READ_ONLY,
    INPUT_VALUE_REQUIRED,
)
from caserules.context import ActionContext, PipelineKind
from caserules.references import ReferenceKind, parse_reference
from caserules.registry import ActionParameter, action
from caserules.values import ValueKind

logger = logging.getLogger(__name__)

FIELD = ActionParameter("field", "The case field",
                        reference_kinds=(ReferenceKind.CASE_CHANGE, ReferenceKind.CASE_VALUE))


def _input_field(context: ActionContext, field: Any) -> Optional[str]:
    """Field name of a field parameter, None for unknown fields."""
    if field is None or not str(field).strip():
        return None
    reference = parse_reference(field)
    field_name = reference.field if reference else str(field).strip()
    if context.host.get_value_type(field_name) is None:
        logger.warning(f"Input attribute on unknown case field {field_name}")
        return None
    return field_name


def set_input_attribute(context: ActionContext, field: Any, attribute: str, value: Any = True) -> None:
    field_name = _input_field(context, field)
    if field_name is not None:
        context.host.set_field_attribute(field_name, attribute, value)


def remove_input_attribute(context: ActionContext, field: Any, attribute: str) -> None:
    field_name = _input_field(context, field)
    if field_name is not None:
        context.host.remove_field_attribute(field_name, attribute)


def _switch_action(name: str, attribute: str, enable: bool, description: str, category: str):
    """Register a field input action setting (enable) or removing an input attribute."""

    @action(name, PipelineKind.BUILD, FIELD,
            description=description, categories=(CATEGORY_FIELD_INPUT, category),
            namespace=INPUT_NAMESPACE)
    def input_action(context: ActionContext, field: Any) -> None:
        if enable:
            set_input_attribute(context, field, attribute)
        else:
            remove_input_attribute(context, field, attribute)

    input_action.__name__ = name
    return input_action


hide_field = _switch_action("HideField", INPUT_HIDDEN, True, "Hide all field inputs", CATEGORY_FIELD)
show_field = _switch_action("ShowField", INPUT_HIDDEN, False, "Show all field inputs", CATEGORY_FIELD)
hide_field_description = _switch_action(
    "HideFieldDescription", INPUT_HIDDEN_DESCRIPTION, True, "Hide field description", CATEGORY_FIELD)
show_field_description = _switch_action(
    "ShowFieldDescription", INPUT_HIDDEN_DESCRIPTION, False, "Show field description", CATEGORY_FIELD)
disable_field_value = _switch_action(
    "DisableFieldValue", INPUT_VALUE_READ_ONLY, True, "Disable field value input", CATEGORY_FIELD_VALUE)
enable_field_value = _switch_action(
    "EnableFieldValue", INPUT_VALUE_READ_ONLY, False, "Enable field value input", CATEGORY_FIELD_VALUE)
disable_field_start = _switch_action(
    "DisableFieldStart", INPUT_START_READ_ONLY, True, "Disable field start input", CATEGORY_FIELD_START)
enable_field_start = _switch_action(
    "EnableFieldStart", INPUT_START_READ_ONLY, False, "Enable field start input", CATEGORY_FIELD_START)
disable_field_end = _switch_action(
    "DisableFieldEnd", INPUT_END_READ_ONLY, True, "Disable field end input", CATEGORY_FIELD_END)
enable_field_end = _switch_action(
    "EnableFieldEnd", INPUT_END_READ_ONLY, False, "Enable field end input", CATEGORY_FIELD_END)


# current field

@action("HiddenField", PipelineKind.BUILD,
        categories=(CATEGORY_FIELD_INPUT, CATEGORY_FIELD), field_scoped=True,
        namespace=INPUT_NAMESPACE)
def hidden_field(context: ActionContext) -> None:
    """Hide the inputs of the current field"""
    set_input_attribute(context, context.case_field_name, INPUT_HIDDEN)


@action("VisibleField", PipelineKind.BUILD,
        categories=(CATEGORY_FIELD_INPUT, CATEGORY_FIELD), field_scoped=True,
        namespace=INPUT_NAMESPACE)
def visible_field(context: ActionContext) -> None:
    """Show the inputs of the current field"""
    remove_input_attribute(context, context.case_field_name, INPUT_HIDDEN)


def _flag_action(name: str, attribute: str, description: str, parameter: ActionParameter):
    """Register a field input action with a boolean flag: true sets, false removes."""

    @action(name, PipelineKind.BUILD, FIELD, parameter,
            description=description, categories=(CATEGORY_FIELD_INPUT, CATEGORY_FIELD_VALUE),
            namespace=INPUT_NAMESPACE)
    def flag_action(context: ActionContext, field: Any, flag: Any = True) -> None:
        flag_value = ActionValue.resolve(context, flag, ValueKind.BOOLEAN)
        if not flag_value.is_fulfilled:
            return
        if flag_value.resolved_value:
            set_input_attribute(context, field, attribute)
        else:
            remove_input_attribute(context, field, attribute)

    flag_action.__name__ = name
    return flag_action


set_field_value_required = _flag_action(
    "SetFieldValueRequired", INPUT_VALUE_REQUIRED, "Set field value required input",
    ActionParameter("required", "The value is required", value_kinds=(ValueKind.BOOLEAN,),
                    optional=True, default=True))
set_field_value_read_only = _flag_action(
    "SetFieldValueReadOnly", INPUT_VALUE_READ_ONLY, "Set field value read only input",
    ActionParameter("readOnly", "The value is read only", value_kinds=(ValueKind.BOOLEAN,),
                    optional=True, default=True))
