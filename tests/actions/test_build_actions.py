from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from caserules.actions.build import (
    apply_start_end,
    limit,
    max_limit,
    min_limit,
    set_attribute,
    set_end,
    set_field_attribute,
    set_field_start_end,
    set_field_value,
    set_start,
    set_start_end,
    set_value,
    set_value_attribute,
)
from caserules.context import PipelineKind
from caserules.values import ValueKind


def _case(case_factory, change=None):
    return case_factory(
        {
            "Wage": ValueKind.DECIMAL,
            "BaseWage": ValueKind.DECIMAL,
            "Level": ValueKind.INTEGER,
            "Hired": ValueKind.DATETIME,
            "Name": ValueKind.STRING,
        },
        values=[{"field": "BaseWage", "value": "4000"}],
        change=change,
    )


def _build(context_factory, case, field_name=None):
    return context_factory(case, PipelineKind.BUILD, field_name=field_name)


def _wage(case):
    return case.get_change_target("Wage")


# -----------------------------------------------------------------------------
# Limits
# -----------------------------------------------------------------------------

def test_min_limit_is_idempotent(case_factory, context_factory):
    case = _case(case_factory, {"Wage": 40})
    context = _build(context_factory, case, "Wage")

    min_limit(context, "50")
    assert _wage(case).value == Decimal("50")
    min_limit(context, "50")
    assert _wage(case).value == Decimal("50")
    assert not context.has_issues


def test_max_limit_and_range(case_factory, context_factory):
    case = _case(case_factory, {"Wage": 60, "Level": 5})
    max_limit(_build(context_factory, case, "Wage"), "50")
    assert _wage(case).value == Decimal("50")

    limit(_build(context_factory, case, "Level"), "10", "20")
    assert case.get_change_target("Level").value == 10

    max_limit(_build(context_factory, case, "Level"), "@BaseWage")
    assert case.get_change_target("Level").value == 10


def test_limit_skips_absent_values_and_unordered_kinds(case_factory, context_factory):
    case = _case(case_factory, {"Name": "abc"})
    min_limit(_build(context_factory, case, "Wage"), "50")
    assert _wage(case).value is None

    min_limit(_build(context_factory, case, "Name"), "zzz")
    assert case.get_change_target("Name").value == "abc"

    case = _case(case_factory, {"Wage": 40})
    min_limit(_build(context_factory, case, "Wage"), "@Unknown?")
    assert _wage(case).value == Decimal("40")


def test_date_limit_replaces_different_dates(case_factory, context_factory):
    case = _case(case_factory, {"Hired": "2024-01-15"})
    min_limit(_build(context_factory, case, "Hired"), "2024-01-01")
    assert case.get_change_target("Hired").value == datetime(2024, 1, 1)


# -----------------------------------------------------------------------------
# Field setters
# -----------------------------------------------------------------------------

def test_set_field_value_from_case_value(case_factory, context_factory):
    case = _case(case_factory)
    context = _build(context_factory, case)
    set_field_value(context, "#Wage", "@BaseWage.Value.Multiply(1.05)")
    assert _wage(case).value == Decimal("4200.00")
    assert not context.has_issues


def test_set_field_value_rejects_invalid_targets(case_factory, context_factory):
    case = _case(case_factory)
    context = _build(context_factory, case)

    set_field_value(context, "@Wage", "1")
    set_field_value(context, "#Wage.FieldAttribute", "1")
    set_field_value(context, "Wage", "1")
    assert [issue.message for issue in context.issues] == [
        "Invalid target field reference @Wage",
        "Invalid target field reference #Wage.FieldAttribute",
        "Invalid target field reference Wage",
    ]
    assert case.changes == {}


def test_set_field_value_skips_unknown_fields_and_unresolved_values(case_factory, context_factory):
    case = _case(case_factory)
    context = _build(context_factory, case)

    set_field_value(context, "#Missing", "1")
    set_field_value(context, "#Wage", "@Bonus?")
    set_field_value(context, "#Wage", "many")
    assert not context.has_issues
    assert case.changes == {}


def test_set_value_on_current_field(case_factory, context_factory):
    case = _case(case_factory)
    set_value(_build(context_factory, case, "Level"), "7")
    assert case.get_change_target("Level").value == 7


def test_start_and_end_keep_period_order(case_factory, context_factory):
    case = _case(case_factory)
    context = _build(context_factory, case, "Wage")

    set_end(context, "2024-12-31")
    set_start(context, "2025-01-01")
    assert _wage(case).start is None
    assert _wage(case).end == datetime(2024, 12, 31)

    set_start(context, "2024-01-01")
    set_end(context, "2023-12-31")
    assert _wage(case).start == datetime(2024, 1, 1)
    assert _wage(case).end == datetime(2024, 12, 31)


def test_start_end_orders_bounds(case_factory, context_factory):
    case = _case(case_factory)
    set_start_end(_build(context_factory, case, "Wage"), "2024-12-31", "2024-01-01")
    assert _wage(case).start == datetime(2024, 1, 1)
    assert _wage(case).end == datetime(2024, 12, 31)

    set_field_start_end(_build(context_factory, case), "#Hired", "2024-01-01", "@Unknown?")
    assert case.get_change_target("Hired").start is None


@pytest.mark.parametrize("start, end", [
    ("2024-01-01", "2024-12-31"),
    ("2024-12-31", "2024-01-01"),
])
def test_start_end_period_does_not_depend_on_order(case_factory, context_factory, start, end):
    case = _case(case_factory)
    context = _build(context_factory, case, "Wage")

    assert apply_start_end(context, "Wage", start, end) is True
    assert _wage(case).start == datetime(2024, 1, 1)
    assert _wage(case).end == datetime(2024, 12, 31)

    set_start_end(context, end, start)
    assert _wage(case).start == datetime(2024, 1, 1)
    assert _wage(case).end == datetime(2024, 12, 31)
    assert not context.has_issues


def test_start_end_with_missing_half_keeps_period(case_factory, context_factory):
    case = _case(case_factory)
    context = _build(context_factory, case, "Wage")
    set_start_end(context, "2024-01-01", "2024-12-31")

    assert apply_start_end(context, "Wage", "2025-01-01", "@Unknown?") is False
    assert apply_start_end(context, "Wage", "@Unknown?", "2025-12-31") is False
    set_start_end(context, "2025-01-01", "@Bonus?")
    assert _wage(case).start == datetime(2024, 1, 1)
    assert _wage(case).end == datetime(2024, 12, 31)

    assert apply_start_end(context, "Missing", "2024-01-01", "2024-12-31") is False
    assert not context.has_issues


# -----------------------------------------------------------------------------
# Attributes
# -----------------------------------------------------------------------------

def test_field_attribute_set_and_remove(case_factory, context_factory):
    case = _case(case_factory)
    context = _build(context_factory, case, "Wage")

    set_attribute(context, "unit", "CHF")
    assert case.get_field_attribute("Wage", "unit") == "CHF"

    set_attribute(context, "unit")
    assert case.get_field_attribute("Wage", "unit") is None
    assert not context.has_issues


def test_value_attribute(case_factory, context_factory):
    case = _case(case_factory)
    set_value_attribute(_build(context_factory, case, "Wage"), "source", "import")
    assert case.get_value_attribute("Wage", "source") == "import"


def test_attribute_target_must_be_an_attribute_reference(case_factory, context_factory):
    case = _case(case_factory)
    context = _build(context_factory, case)

    set_field_attribute(context, "#Wage", "unit", "CHF")
    assert context.issues[0].message == "Invalid target attribute reference #Wage"

    context.clear_issues()
    set_field_attribute(context, "#Wage.FieldAttribute", "  ", "CHF")
    assert context.issues[0].message.startswith("Invalid attribute")
