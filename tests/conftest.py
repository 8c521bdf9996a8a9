from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from caserules.config import ENV_PREFIX
from caserules.context import ActionContext, PipelineKind
from caserules.host import FieldDefinition, InMemoryCase

VALUE_DATE = datetime(2024, 6, 1)

ENV_NAMES = ("DEFAULT_NAMESPACE", "LOG_LEVEL", "VALUE_DATE_OFFSET", "REPORT_ISSUES")


@pytest.fixture
def case_factory():
    """
    Build an InMemoryCase from compact arguments.

    fields maps field names to a ValueKind or a FieldDefinition, values is a
    list of value rows, change maps field names to change values.
    """

    def factory(fields, values=None, change=None, actions=None, name="Employee"):
        definitions = []
        for field_name, spec in fields.items():
            if isinstance(spec, FieldDefinition):
                definitions.append(spec)
            else:
                definitions.append(FieldDefinition(name=field_name, value_type=spec))
        frame = pd.DataFrame(values) if values else None
        case = InMemoryCase(name=name, fields=definitions, values=frame, actions=actions)
        for field_name, value in (change or {}).items():
            case.set_change_value(field_name, value)
        return case

    return factory


@pytest.fixture
def context_factory():
    """Create an action context with a fixed value date."""

    def factory(host, pipeline=PipelineKind.VALIDATE, field_name=None, value_date=VALUE_DATE):
        return ActionContext(host=host, pipeline=pipeline, case_field_name=field_name, value_date=value_date)

    return factory


@pytest.fixture
def clean_env(monkeypatch):
    """Remove CASERULES_* variables for the test and restore them afterwards."""
    for name in ENV_NAMES:
        monkeypatch.setenv(f"{ENV_PREFIX}{name}", "")
        monkeypatch.delenv(f"{ENV_PREFIX}{name}")
    return monkeypatch
