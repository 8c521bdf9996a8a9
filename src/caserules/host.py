"""
Host interface: the case data the rule engine reads from and writes to.

The engine never talks to persistence directly. Every lookup and mutation goes
through the CaseHost protocol, one method per host operation:

    get_value_type / get_field_value          stored case values (time sliced)
    get_change_target / set_change_*          the case change being built
    get/set/remove_field_attribute            case field metadata
    get/set/remove_value_attribute            metadata of the current value
    list_fields / list_configured_actions     pipeline configuration
    report_issue                              validation feedback

InMemoryCase is the reference implementation: field definitions plus a pandas
DataFrame of time-sliced case values, and an in-memory case change.
RelationCase joins two cases for the relation pipelines.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

import pandas as pd

from caserules.context import Issue, PipelineKind
from caserules.values import ValueKind, coerce

logger = logging.getLogger(__name__)

VALUE_COLUMNS = ["field", "value", "start", "end", "created"]


class UnknownFieldError(KeyError):
    """Write access to a field the case does not define."""
    pass


@dataclass
class FieldValue:
    """A typed case value with its validity period."""
    kind: Optional[ValueKind]
    value: Any = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    mandatory: bool = False

    @property
    def has_value(self) -> bool:
        return self.value is not None


@dataclass
class FieldDefinition:
    """
    Definition of one case field.

    Attributes:
        name: Field name, unique within the case.
        value_type: Kind of the field values.
        mandatory: Whether the case requires a value.
        attributes: Field attributes (case field metadata).
        actions: Field-scoped action expressions per pipeline.
    """
    name: str
    value_type: ValueKind
    mandatory: bool = False
    attributes: Dict[str, Any] = field(default_factory=dict)
    actions: Dict[PipelineKind, List[str]] = field(default_factory=dict)


@dataclass
class CaseChange:
    """Pending change of one field."""
    value: Any = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


class CaseHost(Protocol):
    """Operations the rule engine performs against its environment."""

    def get_value_type(self, field_name: str) -> Optional[ValueKind]:
        ...

    def get_field_value(self, field_name: str, as_of: Optional[datetime] = None) -> FieldValue:
        ...

    def get_change_target(self, field_name: str) -> FieldValue:
        ...

    def set_change_value(self, field_name: str, value: Any) -> None:
        ...

    def set_change_start(self, field_name: str, start: Optional[datetime]) -> None:
        ...

    def set_change_end(self, field_name: str, end: Optional[datetime]) -> None:
        ...

    def get_field_attribute(self, field_name: str, attribute: str) -> Any:
        ...

    def set_field_attribute(self, field_name: str, attribute: str, value: Any) -> None:
        ...

    def remove_field_attribute(self, field_name: str, attribute: str) -> None:
        ...

    def get_value_attribute(self, field_name: str, attribute: str) -> Any:
        ...

    def set_value_attribute(self, field_name: str, attribute: str, value: Any) -> None:
        ...

    def remove_value_attribute(self, field_name: str, attribute: str) -> None:
        ...

    def list_fields(self) -> List[str]:
        ...

    def list_configured_actions(self, pipeline: PipelineKind, field_name: Optional[str] = None) -> List[str]:
        ...

    def report_issue(self, field_name: Optional[str], message: str) -> None:
        ...


# =============================================================================
# IN-MEMORY CASE
# =============================================================================

def empty_values_frame() -> pd.DataFrame:
    """Empty case value table with the expected columns."""
    frame = pd.DataFrame({column: pd.Series(dtype=object) for column in VALUE_COLUMNS})
    frame["start"] = pd.to_datetime(frame["start"])
    frame["end"] = pd.to_datetime(frame["end"])
    return frame


def normalize_values_frame(values: Optional[pd.DataFrame]) -> pd.DataFrame:
    """
    Normalize a case value table.

    Required column: field, value. Optional: start, end, created.
    Missing periods are open, missing creation order follows the row order.
    """
    if values is None or values.empty:
        return empty_values_frame()
    missing = {"field", "value"} - set(values.columns)
    if missing:
        raise ValueError(f"Case value table missing columns: {sorted(missing)}")
    frame = values.copy()
    for column in ("start", "end"):
        if column not in frame.columns:
            frame[column] = pd.NaT
        frame[column] = pd.to_datetime(frame[column])
    if "created" not in frame.columns:
        frame["created"] = range(len(frame))
    frame["value"] = frame["value"].astype(object)
    return frame[VALUE_COLUMNS].reset_index(drop=True)


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()


class InMemoryCase:
    """
    Case held in memory.

    Stored values are time sliced: a row applies from its start (inclusive)
    to its end (exclusive); open bounds are NaT. When several rows apply, the
    most recently created one wins.
    """

    def __init__(
        self,
        name: str,
        fields: Iterable[FieldDefinition],
        values: Optional[pd.DataFrame] = None,
        actions: Optional[Dict[PipelineKind, List[str]]] = None,
    ):
        self.name = name
        self.fields: Dict[str, FieldDefinition] = {}
        for definition in fields:
            if definition.name in self.fields:
                raise ValueError(f"Duplicated case field {definition.name}")
            self.fields[definition.name] = definition
        self.values = normalize_values_frame(values)
        self.actions: Dict[PipelineKind, List[str]] = dict(actions or {})
        self.changes: Dict[str, CaseChange] = {}
        self.issues: List[Issue] = []

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryCase":
        """
        Build a case from a plain document.

        Expected keys: name, fields (list of {name, valueType, mandatory,
        attributes, actions}), values (list of {field, value, start, end}),
        actions ({pipeline: [expressions]}), change ({field: value}).
        """
        definitions = []
        for item in data.get("fields", []):
            kind = ValueKind.from_name(item.get("valueType", "String"))
            if kind is None:
                raise ValueError(f"Unknown value type {item.get('valueType')} of field {item.get('name')}")
            definitions.append(FieldDefinition(
                name=item["name"],
                value_type=kind,
                mandatory=bool(item.get("mandatory", False)),
                attributes=dict(item.get("attributes", {})),
                actions=_pipeline_actions(item.get("actions", {})),
            ))
        values = pd.DataFrame(data["values"]) if data.get("values") else None
        case = cls(
            name=data.get("name", "Case"),
            fields=definitions,
            values=values,
            actions=_pipeline_actions(data.get("actions", {})),
        )
        for field_name, change in data.get("change", {}).items():
            if isinstance(change, dict):
                case.set_change_value(field_name, change.get("value"))
                case.set_change_start(field_name, coerce(change.get("start"), ValueKind.DATETIME))
                case.set_change_end(field_name, coerce(change.get("end"), ValueKind.DATETIME))
            else:
                case.set_change_value(field_name, change)
        return case

    # -------------------------------------------------------------------------
    # Field definitions
    # -------------------------------------------------------------------------

    def _definition(self, field_name: str) -> FieldDefinition:
        definition = self.fields.get(field_name)
        if definition is None:
            raise UnknownFieldError(field_name)
        return definition

    def get_value_type(self, field_name: str) -> Optional[ValueKind]:
        definition = self.fields.get(field_name)
        return definition.value_type if definition else None

    def list_fields(self) -> List[str]:
        return list(self.fields)

    def list_configured_actions(self, pipeline: PipelineKind, field_name: Optional[str] = None) -> List[str]:
        if field_name is None:
            return list(self.actions.get(pipeline, []))
        definition = self.fields.get(field_name)
        if definition is None:
            return []
        return list(definition.actions.get(pipeline, []))

    # -------------------------------------------------------------------------
    # Stored values
    # -------------------------------------------------------------------------

    def get_field_value(self, field_name: str, as_of: Optional[datetime] = None) -> FieldValue:
        definition = self.fields.get(field_name)
        if definition is None:
            return FieldValue(kind=None)

        rows = self.values[self.values["field"] == field_name]
        if as_of is not None and not rows.empty:
            stamp = pd.Timestamp(as_of)
            rows = rows[
                (rows["start"].isna() | (rows["start"] <= stamp))
                & (rows["end"].isna() | (rows["end"] > stamp))
            ]
        if rows.empty:
            return FieldValue(kind=definition.value_type, mandatory=definition.mandatory)

        row = rows.sort_values("created", kind="stable").iloc[-1]
        return FieldValue(
            kind=definition.value_type,
            value=coerce(row["value"], definition.value_type),
            start=_to_datetime(row["start"]),
            end=_to_datetime(row["end"]),
            mandatory=definition.mandatory,
        )

    def add_value(self, field_name: str, value: Any,
                  start: Optional[datetime] = None, end: Optional[datetime] = None) -> None:
        """Append a stored value row."""
        self._definition(field_name)
        row = pd.DataFrame([{
            "field": field_name,
            "value": value,
            "start": pd.Timestamp(start) if start else pd.NaT,
            "end": pd.Timestamp(end) if end else pd.NaT,
            "created": len(self.values),
        }])
        self.values = normalize_values_frame(pd.concat([self.values, row], ignore_index=True))

    # -------------------------------------------------------------------------
    # Case change
    # -------------------------------------------------------------------------

    def _change(self, field_name: str) -> CaseChange:
        self._definition(field_name)
        return self.changes.setdefault(field_name, CaseChange())

    def get_change_target(self, field_name: str) -> FieldValue:
        definition = self.fields.get(field_name)
        if definition is None:
            return FieldValue(kind=None)
        change = self.changes.get(field_name, CaseChange())
        return FieldValue(
            kind=definition.value_type,
            value=coerce(change.value, definition.value_type),
            start=change.start,
            end=change.end,
            mandatory=definition.mandatory,
        )

    def set_change_value(self, field_name: str, value: Any) -> None:
        definition = self._definition(field_name)
        self._change(field_name).value = coerce(value, definition.value_type)
        logger.debug(f"{self.name}: {field_name} value set to {value!r}")

    def set_change_start(self, field_name: str, start: Optional[datetime]) -> None:
        self._change(field_name).start = start

    def set_change_end(self, field_name: str, end: Optional[datetime]) -> None:
        self._change(field_name).end = end

    def changes_frame(self) -> pd.DataFrame:
        """Case change as a table with one row per changed field."""
        rows = [
            {"field": name, "value": change.value, "start": change.start, "end": change.end}
            for name, change in self.changes.items()
        ]
        if not rows:
            return empty_values_frame().drop(columns=["created"])
        return pd.DataFrame(rows, columns=["field", "value", "start", "end"])

    # -------------------------------------------------------------------------
    # Attributes
    # -------------------------------------------------------------------------

    def get_field_attribute(self, field_name: str, attribute: str) -> Any:
        definition = self.fields.get(field_name)
        return definition.attributes.get(attribute) if definition else None

    def set_field_attribute(self, field_name: str, attribute: str, value: Any) -> None:
        self._definition(field_name).attributes[attribute] = value

    def remove_field_attribute(self, field_name: str, attribute: str) -> None:
        self._definition(field_name).attributes.pop(attribute, None)

    def get_value_attribute(self, field_name: str, attribute: str) -> Any:
        change = self.changes.get(field_name)
        return change.attributes.get(attribute) if change else None

    def set_value_attribute(self, field_name: str, attribute: str, value: Any) -> None:
        self._change(field_name).attributes[attribute] = value

    def remove_value_attribute(self, field_name: str, attribute: str) -> None:
        change = self.changes.get(field_name)
        if change is not None:
            change.attributes.pop(attribute, None)

    # -------------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------------

    def report_issue(self, field_name: Optional[str], message: str) -> None:
        self.issues.append(Issue(message=message, field_name=field_name))


# =============================================================================
# RELATION CASE
# =============================================================================

class RelationCase:
    """
    Host for case relations.

    Case value references ('@') read the source case, its pending change
    first. Case change references ('#') and all writes address the target
    case change.
    """

    def __init__(self, source: InMemoryCase, target: InMemoryCase,
                 actions: Optional[Dict[PipelineKind, List[str]]] = None):
        self.source = source
        self.target = target
        self.actions: Dict[PipelineKind, List[str]] = dict(actions or {})
        self.issues: List[Issue] = []

    def get_value_type(self, field_name: str) -> Optional[ValueKind]:
        return self.source.get_value_type(field_name) or self.target.get_value_type(field_name)

    def get_field_value(self, field_name: str, as_of: Optional[datetime] = None) -> FieldValue:
        change = self.source.get_change_target(field_name)
        if change.has_value:
            return change
        return self.source.get_field_value(field_name, as_of)

    def get_change_target(self, field_name: str) -> FieldValue:
        return self.target.get_change_target(field_name)

    def set_change_value(self, field_name: str, value: Any) -> None:
        self.target.set_change_value(field_name, value)

    def set_change_start(self, field_name: str, start: Optional[datetime]) -> None:
        self.target.set_change_start(field_name, start)

    def set_change_end(self, field_name: str, end: Optional[datetime]) -> None:
        self.target.set_change_end(field_name, end)

    def get_field_attribute(self, field_name: str, attribute: str) -> Any:
        return self.target.get_field_attribute(field_name, attribute)

    def set_field_attribute(self, field_name: str, attribute: str, value: Any) -> None:
        self.target.set_field_attribute(field_name, attribute, value)

    def remove_field_attribute(self, field_name: str, attribute: str) -> None:
        self.target.remove_field_attribute(field_name, attribute)

    def get_value_attribute(self, field_name: str, attribute: str) -> Any:
        return self.target.get_value_attribute(field_name, attribute)

    def set_value_attribute(self, field_name: str, attribute: str, value: Any) -> None:
        self.target.set_value_attribute(field_name, attribute, value)

    def remove_value_attribute(self, field_name: str, attribute: str) -> None:
        self.target.remove_value_attribute(field_name, attribute)

    def list_fields(self) -> List[str]:
        return self.target.list_fields()

    def list_configured_actions(self, pipeline: PipelineKind, field_name: Optional[str] = None) -> List[str]:
        if field_name is not None:
            return []
        return list(self.actions.get(pipeline, []))

    def report_issue(self, field_name: Optional[str], message: str) -> None:
        self.issues.append(Issue(message=message, field_name=field_name))


def _pipeline_actions(data: Dict[str, List[str]]) -> Dict[PipelineKind, List[str]]:
    result = {}
    for key, expressions in data.items():
        result[PipelineKind.from_name(key)] = list(expressions)
    return result
