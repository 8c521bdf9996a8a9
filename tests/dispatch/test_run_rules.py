from __future__ import annotations

import json
from decimal import Decimal

import pytest

from caserules.run_rules import load_case, main

CASE_DOCUMENT = {
    "name": "Employee",
    "fields": [
        {"name": "Level", "valueType": "Integer"},
        {
            "name": "Wage",
            "valueType": "Decimal",
            "actions": {"Build": ["MinLimit(50)"], "Validate": ["ValueGreaterThan(10)"]},
        },
    ],
    "values": [{"field": "Level", "value": 3}],
    "actions": {"Available": ["CaseValueGreaterEqualThan(Level, 2)"]},
    "change": {"Wage": 40},
}


@pytest.fixture
def case_file(tmp_path):
    path = tmp_path / "case.json"
    path.write_text(json.dumps(CASE_DOCUMENT), encoding="utf-8")
    return path


@pytest.fixture
def env_file(tmp_path, clean_env):
    path = tmp_path / "empty.env"
    path.write_text("", encoding="utf-8")
    return path


def test_available_pipeline_passes(case_file, env_file, capsys):
    code = main([str(case_file), "--pipeline", "Available", "--env-file", str(env_file)])
    out = capsys.readouterr().out

    assert code == 0
    assert "Available: Employee passed" in out
    assert "Rules complete: passed" in out


def test_csv_values_override_inline_values(case_file, env_file, tmp_path, capsys):
    values = tmp_path / "values.csv"
    values.write_text("field,value\nLevel,1\n", encoding="utf-8")

    code = main([str(case_file), "--values", str(values), "--pipeline", "available",
                 "--env-file", str(env_file)])
    out = capsys.readouterr().out

    assert code == 1
    assert "Level 1 is less than 2" in out
    assert "Rules complete: failed" in out


def test_default_runs_build_then_validate(case_file, env_file, capsys):
    code = main([str(case_file), "--env-file", str(env_file)])
    out = capsys.readouterr().out

    assert code == 0
    assert out.index("Build: Employee") < out.index("Validate: Employee")
    assert "Case Change" in out


def test_list_actions(env_file, capsys):
    code = main(["--list-actions", "--pipeline", "Available", "--env-file", str(env_file)])
    out = capsys.readouterr().out

    assert code == 0
    assert "CaseValueEqual" in out
    assert "SetFieldValue" not in out


def test_relation_pipeline_is_rejected(case_file, env_file):
    with pytest.raises(SystemExit):
        main([str(case_file), "--pipeline", "RelationBuild", "--env-file", str(env_file)])


def test_case_document_is_required(env_file):
    with pytest.raises(SystemExit):
        main(["--env-file", str(env_file)])


def test_load_case_appends_csv_values(case_file, tmp_path):
    values = tmp_path / "values.csv"
    values.write_text("field,value,start\nLevel,7,2020-01-01\n", encoding="utf-8")

    case = load_case(case_file, values)

    assert len(case.values) == 2
    assert case.get_field_value("Level").value == 7
    assert case.get_change_target("Wage").value == Decimal("40")
