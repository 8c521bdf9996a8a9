from __future__ import annotations

from datetime import datetime

import pytest

from caserules.actions.validate import (
    defined,
    email,
    equal_text,
    length,
    length_between,
    max_length,
    min_length,
    not_equal_text,
    regex,
    undefined,
)
from caserules.context import PipelineKind
from caserules.host import FieldDefinition
from caserules.registry import ACTION_REGISTRY
from caserules.values import ValueKind


def _run(context, name, *arguments):
    ACTION_REGISTRY.get(PipelineKind.VALIDATE, name).func(context, *arguments)


def _codes(context):
    return [issue.code for issue in context.issues]


def _case(case_factory, change=None):
    case = case_factory(
        {
            "Mail": ValueKind.STRING,
            "Name": ValueKind.STRING,
            "Wage": ValueKind.DECIMAL,
            "Level": ValueKind.INTEGER,
            "Bonus": FieldDefinition("Bonus", ValueKind.DECIMAL, mandatory=True),
            "Contract": ValueKind.STRING,
        },
        values=[{"field": "Level", "value": 3}],
        change=change,
    )
    return case


# -----------------------------------------------------------------------------
# Field checks
# -----------------------------------------------------------------------------

def test_email(case_factory, context_factory):
    context = context_factory(_case(case_factory, {"Mail": "anna@example.com"}), field_name="Mail")
    email(context)
    assert not context.has_issues

    context = context_factory(_case(case_factory, {"Mail": "anna"}), field_name="Mail")
    email(context)
    assert _codes(context) == ["InvalidEmail"]
    assert context.issues[0].message == "Mail with invalid E-Mail anna"
    assert context.issues[0].field_name == "Mail"

    context = context_factory(_case(case_factory), field_name="Mail")
    email(context)
    assert _codes(context) == ["MissingCaseValue"]


def test_regex_searches_value(case_factory, context_factory):
    context = context_factory(_case(case_factory, {"Name": "AB-1234"}), field_name="Name")
    regex(context, r"\d{4}")
    assert not context.has_issues

    regex(context, r"^\d{4}$")
    assert _codes(context) == ["InvalidRegexMatch"]
    assert context.issues[0].message == "Name with invalid value AB-1234"


def test_defined_and_undefined(case_factory, context_factory):
    context = context_factory(_case(case_factory, {"Name": "Anna"}), field_name="Name")
    defined(context)
    assert not context.has_issues
    undefined(context)
    assert _codes(context) == ["DefinedValue"]

    context = context_factory(_case(case_factory), field_name="Name")
    defined(context)
    assert context.issues[0].message == "Name should be not empty"


# -----------------------------------------------------------------------------
# Compare
# -----------------------------------------------------------------------------

def test_field_value_compare(case_factory, context_factory):
    context = context_factory(_case(case_factory, {"Wage": 5}), field_name="Wage")
    _run(context, "ValueGreaterThan", "10")
    assert _codes(context) == ["CompareValueLessEqual"]
    assert context.issues[0].message == "Wage 5 is less/equal than 10"

    context.clear_issues()
    _run(context, "ValueLessEqualThan", "5")
    _run(context, "ValueNotEqual", "6")
    assert not context.has_issues


def test_field_start_and_end_compare(case_factory, context_factory):
    case = _case(case_factory, {"Wage": 5})
    case.set_change_start("Wage", datetime(2024, 3, 1))
    case.set_change_end("Wage", datetime(2024, 12, 31))
    context = context_factory(case, field_name="Wage")

    _run(context, "StartLessThan", "2024-02-01")
    assert _codes(context) == ["CompareValueGreaterEqual"]
    assert context.issues[0].message == "Wage.Start 2024-03-01 is greater/equal than 2024-02-01"

    context.clear_issues()
    _run(context, "StartBetween", "2024-01-01", "2024-06-30")
    assert not context.has_issues

    _run(context, "EndBetween", "2024-01-01", "2024-06-30")
    assert _codes(context) == ["CompareValueGreater"]


def test_source_compare_against_case_change(case_factory, context_factory):
    context = context_factory(_case(case_factory, {"Level": 4}))
    _run(context, "Equal", "@Level", "#Level")
    assert _codes(context) == ["CompareValueNotEqual"]
    assert context.issues[0].message == "Level 3 is not equal Level 4"

    context.clear_issues()
    _run(context, "Between", "#Level", "1", "5")
    assert not context.has_issues


def test_missing_mandatory_value(case_factory, context_factory):
    context = context_factory(_case(case_factory), field_name="Bonus")
    _run(context, "ValueEqual", "1")
    assert _codes(context) == ["CompareMissingSourceValue"]

    context = context_factory(_case(case_factory), field_name="Wage")
    _run(context, "ValueEqual", "1")
    assert not context.has_issues


def test_is_true_and_is_false(case_factory, context_factory):
    case = case_factory({"Active": ValueKind.BOOLEAN}, change={"Active": False})
    context = context_factory(case)
    _run(context, "IsFalse", "#Active")
    assert not context.has_issues
    _run(context, "IsTrue", "#Active")
    assert _codes(context) == ["CompareValueNotTrue"]


# -----------------------------------------------------------------------------
# Text
# -----------------------------------------------------------------------------

def test_length_checks(case_factory, context_factory):
    context = context_factory(_case(case_factory, {"Name": "abc"}), field_name="Name")

    min_length(context, "5")
    assert _codes(context) == ["StringMinLength"]
    assert context.issues[0].message == "Name abc must be a at least 5 characters"

    context.clear_issues()
    max_length(context, "2")
    assert _codes(context) == ["StringMaxLength"]

    context.clear_issues()
    length(context, "3")
    min_length(context, "3")
    max_length(context, "3")
    assert not context.has_issues

    length_between(context, "1", "2")
    assert context.issues[0].message == "Name abc must be at least 1 and at most 2 characters"


def test_length_without_value(case_factory, context_factory):
    context = context_factory(_case(case_factory), field_name="Name")
    min_length(context, "@Level?")
    assert not context.has_issues

    min_length(context, "@Unknown")
    assert not context.has_issues

    min_length(context, "2")
    assert _codes(context) == ["MissingCaseValue"]


def test_text_equality(case_factory, context_factory):
    context = context_factory(_case(case_factory, {"Name": "Anna"}), field_name="Name")

    equal_text(context, "ANNA", True)
    assert not context.has_issues

    equal_text(context, "ANNA")
    assert _codes(context) == ["StringNotEqual"]

    context.clear_issues()
    not_equal_text(context, "Anna")
    assert _codes(context) == ["StringEqual"]
    assert context.issues[0].message == "Name Anna is equal Anna"


# -----------------------------------------------------------------------------
# Period
# -----------------------------------------------------------------------------

def _period_case(case_factory, start=datetime(2024, 1, 1), end=datetime(2024, 12, 31)):
    case = _case(case_factory, {"Contract": "A"})
    case.set_change_start("Contract", start)
    case.set_change_end("Contract", end)
    return case


def test_field_period_within(case_factory, context_factory):
    context = context_factory(_period_case(case_factory))
    _run(context, "FieldPeriodWithin", "#Contract", "2024-06-01")
    assert not context.has_issues

    _run(context, "FieldPeriodWithin", "#Contract", "2025-01-15")
    assert _codes(context) == ["ComparePeriodNotWithin"]
    assert "is not within [Contract.Start 2024-01-01 - Contract.End 2024-12-31]" in context.issues[0].message

    context.clear_issues()
    _run(context, "FieldPeriodNotWithin", "#Contract", "2024-06-01")
    assert _codes(context) == ["ComparePeriodWithin"]


def test_period_before_and_after_on_current_field(case_factory, context_factory):
    context = context_factory(_period_case(case_factory), field_name="Contract")
    _run(context, "PeriodBefore", "2023-12-01")
    _run(context, "PeriodAfter", "2025-01-01")
    _run(context, "PeriodNotBefore", "2024-02-01")
    assert not context.has_issues

    _run(context, "PeriodBefore", "2024-02-01")
    assert _codes(context) == ["ComparePeriodNotBefore"]

    context.clear_issues()
    _run(context, "PeriodNotAfter", "2025-01-01")
    assert _codes(context) == ["ComparePeriodAfter"]


def test_open_period(case_factory, context_factory):
    context = context_factory(_period_case(case_factory, end=None), field_name="Contract")
    _run(context, "PeriodWithin", "2030-01-01")
    assert not context.has_issues

    _run(context, "PeriodBefore", "2030-01-01")
    assert not context.has_issues

    _run(context, "PeriodWithin", "2030-01-01", True)
    assert _codes(context) == ["ComparePeriodOpenPeriod"]


def test_period_input_issues(case_factory, context_factory):
    context = context_factory(_case(case_factory), field_name="Contract")
    _run(context, "PeriodWithin", "2024-01-01")
    assert _codes(context) == ["ComparePeriodWithoutStartDate"]

    context = context_factory(_period_case(case_factory), field_name="Contract")
    _run(context, "PeriodWithin", "invalid")
    assert _codes(context) == ["ComparePeriodInvalidTestDate"]

    context.clear_issues()
    _run(context, "PeriodOverlap", "invalid", "2024-06-01")
    assert _codes(context) == ["ComparePeriodInvalidPeriodStart"]


@pytest.mark.parametrize("name, start, end, codes", [
    ("PeriodOverlap", "2024-06-01", "2025-06-01", []),
    ("PeriodOverlap", "2025-01-01", "2025-06-01", ["ComparePeriodNotOverlap"]),
    ("PeriodNotOverlap", "2025-01-01", "2025-06-01", []),
    ("PeriodNotOverlap", "2023-06-01", "2024-02-01", ["ComparePeriodOverlap"]),
])
def test_period_overlap(case_factory, context_factory, name, start, end, codes):
    context = context_factory(_period_case(case_factory), field_name="Contract")
    _run(context, name, start, end)
    assert _codes(context) == codes
