from __future__ import annotations

from caserules.actions.inputs import (
    disable_field_start,
    enable_field_start,
    hidden_field,
    hide_field,
    hide_field_description,
    set_field_value_read_only,
    set_field_value_required,
    show_field,
    visible_field,
)
from caserules.constants import (
    INPUT_HIDDEN,
    INPUT_HIDDEN_DESCRIPTION,
    INPUT_START_READ_ONLY,
    INPUT_VALUE_READ_ONLY,
    INPUT_VALUE_REQUIRED,
)
from caserules.context import PipelineKind
from caserules.values import ValueKind


def _context(case_factory, context_factory, field_name=None):
    case = case_factory({"Wage": ValueKind.DECIMAL, "Extra": ValueKind.STRING})
    return case, context_factory(case, PipelineKind.BUILD, field_name=field_name)


def test_hide_and_show_accept_name_or_reference(case_factory, context_factory):
    case, context = _context(case_factory, context_factory)

    hide_field(context, "Wage")
    assert case.get_field_attribute("Wage", INPUT_HIDDEN) is True

    show_field(context, "#Wage")
    assert case.get_field_attribute("Wage", INPUT_HIDDEN) is None

    hide_field_description(context, "@Extra")
    assert case.get_field_attribute("Extra", INPUT_HIDDEN_DESCRIPTION) is True


def test_unknown_field_is_ignored(case_factory, context_factory):
    case, context = _context(case_factory, context_factory)
    hide_field(context, "Missing")
    hide_field(context, None)
    assert not context.has_issues
    assert "Missing" not in case.fields


def test_start_input_switch(case_factory, context_factory):
    case, context = _context(case_factory, context_factory)
    disable_field_start(context, "Wage")
    assert case.get_field_attribute("Wage", INPUT_START_READ_ONLY) is True
    enable_field_start(context, "Wage")
    assert case.get_field_attribute("Wage", INPUT_START_READ_ONLY) is None


def test_current_field_visibility(case_factory, context_factory):
    case, context = _context(case_factory, context_factory, field_name="Extra")
    hidden_field(context)
    assert case.get_field_attribute("Extra", INPUT_HIDDEN) is True
    visible_field(context)
    assert case.get_field_attribute("Extra", INPUT_HIDDEN) is None


def test_flag_actions_set_or_remove(case_factory, context_factory):
    case, context = _context(case_factory, context_factory)

    set_field_value_required(context, "Wage")
    assert case.get_field_attribute("Wage", INPUT_VALUE_REQUIRED) is True
    set_field_value_required(context, "Wage", "false")
    assert case.get_field_attribute("Wage", INPUT_VALUE_REQUIRED) is None

    set_field_value_read_only(context, "Wage", "true")
    assert case.get_field_attribute("Wage", INPUT_VALUE_READ_ONLY) is True
    set_field_value_read_only(context, "Wage", "perhaps")
    assert case.get_field_attribute("Wage", INPUT_VALUE_READ_ONLY) is True
