from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pandas as pd
import pytest

from caserules.context import PipelineKind
from caserules.host import (
    FieldDefinition,
    InMemoryCase,
    RelationCase,
    UnknownFieldError,
    normalize_values_frame,
)
from caserules.values import ValueKind


def _document():
    return {
        "name": "Employment",
        "fields": [
            {"name": "Level", "valueType": "Integer", "mandatory": True,
             "actions": {"Build": ["Limit(1, 5)"]}},
            {"name": "Wage", "valueType": "Decimal", "attributes": {"unit": "CHF"}},
            {"name": "Contract", "valueType": "DateTime"},
        ],
        "values": [
            {"field": "Level", "value": 3},
            {"field": "Wage", "value": "4200.50", "start": "2024-01-01"},
        ],
        "actions": {"Available": ["CaseValueGreaterEqualThan(Level, 2)"]},
        "change": {
            "Level": 4,
            "Contract": {"value": "2024-02-01", "start": "2024-02-01", "end": "2024-12-31"},
        },
    }


def test_from_dict_builds_fields_values_and_change():
    case = InMemoryCase.from_dict(_document())

    assert case.name == "Employment"
    assert case.list_fields() == ["Level", "Wage", "Contract"]
    assert case.get_value_type("Wage") == ValueKind.DECIMAL
    assert case.get_field_attribute("Wage", "unit") == "CHF"

    wage = case.get_field_value("Wage", datetime(2024, 6, 1))
    assert wage.value == Decimal("4200.50")
    assert wage.start == datetime(2024, 1, 1)
    assert wage.end is None

    contract = case.get_change_target("Contract")
    assert contract.value == datetime(2024, 2, 1)
    assert contract.start == datetime(2024, 2, 1)
    assert contract.end == datetime(2024, 12, 31)
    assert case.get_change_target("Level").value == 4


def test_configured_actions_per_pipeline_and_field():
    case = InMemoryCase.from_dict(_document())
    assert case.list_configured_actions(PipelineKind.AVAILABLE) == ["CaseValueGreaterEqualThan(Level, 2)"]
    assert case.list_configured_actions(PipelineKind.BUILD, "Level") == ["Limit(1, 5)"]
    assert case.list_configured_actions(PipelineKind.BUILD, "Wage") == []
    assert case.list_configured_actions(PipelineKind.BUILD, "Missing") == []


def test_value_outside_period_is_absent():
    case = InMemoryCase.from_dict(_document())
    wage = case.get_field_value("Wage", datetime(2023, 6, 1))
    assert not wage.has_value
    assert wage.kind == ValueKind.DECIMAL


def test_latest_created_value_wins():
    case = InMemoryCase("Case", [FieldDefinition("Level", ValueKind.INTEGER)])
    case.add_value("Level", 1, start=datetime(2024, 1, 1))
    case.add_value("Level", 2, start=datetime(2024, 3, 1))
    assert case.get_field_value("Level", datetime(2024, 6, 1)).value == 2
    assert case.get_field_value("Level", datetime(2024, 2, 1)).value == 1


def test_unknown_fields():
    case = InMemoryCase.from_dict(_document())
    assert case.get_value_type("Missing") is None
    assert case.get_field_value("Missing").kind is None
    with pytest.raises(UnknownFieldError):
        case.set_change_value("Missing", 1)
    with pytest.raises(UnknownFieldError):
        case.set_field_attribute("Missing", "unit", "CHF")


def test_duplicate_field_and_unknown_type_are_rejected():
    with pytest.raises(ValueError):
        InMemoryCase("Case", [FieldDefinition("A", ValueKind.STRING), FieldDefinition("A", ValueKind.STRING)])
    with pytest.raises(ValueError):
        InMemoryCase.from_dict({"fields": [{"name": "A", "valueType": "Money"}]})


def test_values_frame_requires_field_and_value():
    with pytest.raises(ValueError):
        normalize_values_frame(pd.DataFrame([{"field": "A"}]))

    frame = normalize_values_frame(pd.DataFrame([{"field": "A", "value": 1}]))
    assert list(frame.columns) == ["field", "value", "start", "end", "created"]
    assert pd.isna(frame.loc[0, "start"])


def test_value_attributes_live_on_the_change():
    case = InMemoryCase.from_dict(_document())
    case.set_value_attribute("Wage", "source", "import")
    assert case.get_value_attribute("Wage", "source") == "import"
    case.remove_value_attribute("Wage", "source")
    assert case.get_value_attribute("Wage", "source") is None


def test_changes_frame():
    case = InMemoryCase.from_dict(_document())
    changes = case.changes_frame()
    assert list(changes.columns) == ["field", "value", "start", "end"]
    assert set(changes["field"]) == {"Level", "Contract"}

    empty = InMemoryCase("Empty", [FieldDefinition("A", ValueKind.STRING)]).changes_frame()
    assert empty.empty
    assert list(empty.columns) == ["field", "value", "start", "end"]


def test_relation_reads_source_and_writes_target():
    source = InMemoryCase("Source", [FieldDefinition("Salary", ValueKind.DECIMAL)],
                          values=pd.DataFrame([{"field": "Salary", "value": 4000}]))
    target = InMemoryCase("Target", [FieldDefinition("Wage", ValueKind.DECIMAL)])
    relation = RelationCase(source, target)

    assert relation.get_field_value("Salary").value == Decimal("4000")
    source.set_change_value("Salary", 4500)
    assert relation.get_field_value("Salary").value == Decimal("4500")

    relation.set_change_value("Wage", 10)
    assert target.get_change_target("Wage").value == Decimal("10")
    assert relation.list_fields() == ["Wage"]
    assert relation.get_value_type("Salary") == ValueKind.DECIMAL


def test_report_issue_collects_on_host():
    case = InMemoryCase.from_dict(_document())
    case.report_issue("Level", "Level is missing")
    assert [str(issue) for issue in case.issues] == ["Level: Level is missing"]
