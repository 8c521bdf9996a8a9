from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pandas as pd

from caserules.actions.relation import (
    between,
    equal,
    is_true,
    set_target_field_start_end,
    set_target_field_value,
)
from caserules.context import PipelineKind
from caserules.host import FieldDefinition, InMemoryCase, RelationCase
from caserules.values import ValueKind


def _relation():
    source = InMemoryCase(
        "Source",
        [
            FieldDefinition("Salary", ValueKind.DECIMAL),
            FieldDefinition("Active", ValueKind.BOOLEAN),
        ],
        values=pd.DataFrame([
            {"field": "Salary", "value": 4000},
            {"field": "Active", "value": "false"},
        ]),
    )
    target = InMemoryCase("Target", [FieldDefinition("Wage", ValueKind.DECIMAL)])
    return RelationCase(source, target)


def _messages(context):
    return [issue.message for issue in context.issues]


def test_set_target_value_from_source(context_factory):
    relation = _relation()
    context = context_factory(relation, PipelineKind.RELATION_BUILD)

    set_target_field_value(context, "#Wage", "@Salary")
    assert relation.target.get_change_target("Wage").value == Decimal("4000")

    relation.source.set_change_value("Salary", 4500)
    set_target_field_value(context, "#Wage", "@Salary")
    assert relation.target.get_change_target("Wage").value == Decimal("4500")
    assert not context.has_issues


def test_invalid_and_unknown_targets(context_factory):
    relation = _relation()
    context = context_factory(relation, PipelineKind.RELATION_BUILD)

    set_target_field_value(context, "@Wage", "1")
    set_target_field_value(context, "#Missing", "1")
    set_target_field_start_end(context, "Wage", "2024-01-01", "2024-12-31")
    assert _messages(context) == [
        "Invalid target field @Wage",
        "Unknown target field #Missing",
        "Invalid target field reference Wage",
    ]
    assert relation.target.changes == {}


def test_set_target_period(context_factory):
    relation = _relation()
    context = context_factory(relation, PipelineKind.RELATION_BUILD)
    set_target_field_start_end(context, "#Wage", "2024-12-31", "2024-01-01")
    wage = relation.target.get_change_target("Wage")
    assert wage.start == datetime(2024, 1, 1)
    assert wage.end == datetime(2024, 12, 31)


def test_relation_compare_reports_plain_text(context_factory):
    relation = _relation()
    context = context_factory(relation, PipelineKind.RELATION_VALIDATE)

    equal(context, "@Salary", "5000")
    assert _messages(context) == ["Salary 4000 is not equal 5000"]
    assert context.issues[0].code is None

    context.clear_issues()
    between(context, "@Salary", "1000", "5000")
    assert not context.has_issues


def test_relation_compare_rejects_case_change_value(context_factory):
    relation = _relation()
    relation.target.set_change_value("Wage", 4000)
    context = context_factory(relation, PipelineKind.RELATION_VALIDATE)

    equal(context, "@Salary", "#Wage")
    assert _messages(context) == ["Invalid compare value: #Wage"]


def test_relation_is_true(context_factory):
    context = context_factory(_relation(), PipelineKind.RELATION_VALIDATE)
    is_true(context, "@Active")
    assert _messages(context) == ["Active False is not true"]
