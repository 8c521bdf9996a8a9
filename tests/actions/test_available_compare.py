from __future__ import annotations

from caserules.actions.available import (
    case_value_between,
    case_value_equal,
    case_value_greater_equal_than,
    case_value_greater_than,
)
from caserules.actions.compare import (
    AVAILABLE_POLICY,
    EQUAL,
    GREATER_EQUAL_THAN,
    VALIDATE_POLICY,
    check_boolean,
    compare_values,
)
from caserules.context import PipelineKind
from caserules.host import FieldDefinition
from caserules.values import ValueKind


def _case(case_factory, level=3):
    return case_factory(
        {
            "Level": ValueKind.INTEGER,
            "Required": FieldDefinition("Required", ValueKind.INTEGER, mandatory=True),
            "Type": ValueKind.STRING,
            "Target": ValueKind.INTEGER,
            "Flag": ValueKind.BOOLEAN,
        },
        values=[
            {"field": "Level", "value": level},
            {"field": "Type", "value": "B"},
            {"field": "Target", "value": 3, "start": "2023-01-01", "end": "2024-01-01"},
            {"field": "Target", "value": 5, "start": "2024-01-01"},
        ],
        change={"Level": 3, "Flag": True},
    )


def _messages(context):
    return [issue.message for issue in context.issues]


def test_greater_equal_passes(case_factory, context_factory):
    context = context_factory(_case(case_factory, level=3), PipelineKind.AVAILABLE)
    case_value_greater_equal_than(context, "Level", "2")
    assert not context.has_issues


def test_greater_equal_fails_with_plain_message(case_factory, context_factory):
    context = context_factory(_case(case_factory, level=1), PipelineKind.AVAILABLE)
    case_value_greater_equal_than(context, "Level", "2")
    assert _messages(context) == ["Level 1 is less than 2"]
    assert context.issues[0].code is None


def test_source_accepts_name_or_reference(case_factory, context_factory):
    context = context_factory(_case(case_factory, level=1), PipelineKind.AVAILABLE)
    case_value_equal(context, "@Level", "1")
    case_value_equal(context, "Level", "1")
    assert not context.has_issues


def test_missing_source_value(case_factory, context_factory):
    context = context_factory(_case(case_factory), PipelineKind.AVAILABLE)

    case_value_equal(context, "Required", "1")
    assert _messages(context) == ["Missing compare source value: @Required"]

    context.clear_issues()
    case_value_equal(context, "Unknown", "1")
    assert not context.has_issues

    case_value_equal(context, None, "1")
    assert _messages(context) == ["Missing compare source"]


def test_case_change_compare_value_is_rejected(case_factory, context_factory):
    context = context_factory(_case(case_factory), PipelineKind.AVAILABLE)
    case_value_equal(context, "Level", "#Level")
    assert _messages(context) == ["Invalid compare value: #Level"]


def test_invalid_compare_value(case_factory, context_factory):
    context = context_factory(_case(case_factory), PipelineKind.AVAILABLE)
    case_value_equal(context, "Level", "three")
    assert _messages(context) == ["Invalid compare value: three"]


def test_ordering_is_skipped_for_unordered_kinds(case_factory, context_factory):
    context = context_factory(_case(case_factory), PipelineKind.AVAILABLE)
    case_value_greater_than(context, "Type", "Z")
    assert not context.has_issues

    case_value_equal(context, "Type", "A")
    assert _messages(context) == ["Type B is not equal A"]


def test_compare_date_applies_to_compare_value(case_factory, context_factory):
    context = context_factory(_case(case_factory), PipelineKind.AVAILABLE)
    case_value_equal(context, "Level", "@Target", "2023-06-01")
    assert not context.has_issues

    case_value_equal(context, "Level", "@Target")
    assert _messages(context) == ["Level 3 is not equal Target 5"]


def test_between_reports_first_violated_bound(case_factory, context_factory):
    context = context_factory(_case(case_factory, level=0), PipelineKind.AVAILABLE)
    case_value_between(context, "Level", "1", "2")
    assert _messages(context) == ["Level 0 is less than 1"]

    context = context_factory(_case(case_factory, level=3), PipelineKind.AVAILABLE)
    case_value_between(context, "Level", "1", "2")
    assert _messages(context) == ["Level 3 is greater than 2"]

    context = context_factory(_case(case_factory, level=2), PipelineKind.AVAILABLE)
    case_value_between(context, "Level", "1", "2")
    assert not context.has_issues


def test_available_policy_requires_case_value_source(case_factory, context_factory):
    context = context_factory(_case(case_factory), PipelineKind.AVAILABLE)
    compare_values(context, "#Level", "3", EQUAL, policy=AVAILABLE_POLICY)
    assert _messages(context) == ["Invalid compare source value: #Level"]


def test_validate_policy_reports_codes_and_accepts_case_change(case_factory, context_factory):
    context = context_factory(_case(case_factory, level=1))
    compare_values(context, "@Level", "2", GREATER_EQUAL_THAN, policy=VALIDATE_POLICY)
    assert context.issues[0].code == "CompareValueLess"
    assert context.issues[0].message == "Level 1 is less than 2"

    context.clear_issues()
    compare_values(context, "#Level", "#Level", EQUAL, policy=VALIDATE_POLICY)
    assert not context.has_issues

    compare_values(context, "5", "5", EQUAL, policy=VALIDATE_POLICY)
    assert context.issues[0].code == "CompareInvalidSourceValue"


def test_check_boolean(case_factory, context_factory):
    context = context_factory(_case(case_factory))
    check_boolean(context, "#Flag", True, policy=VALIDATE_POLICY)
    assert not context.has_issues

    check_boolean(context, "#Flag", False, policy=VALIDATE_POLICY)
    assert context.issues[0].code == "CompareValueNotFalse"
    assert context.issues[0].message == "Flag True is not false"

    context.clear_issues()
    check_boolean(context, "@Flag", True, policy=AVAILABLE_POLICY)
    assert context.issues[0].code is None
    assert context.issues[0].message.startswith("Invalid compare source")
