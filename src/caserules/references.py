"""
Reference Resolver: symbolic field references.

Action parameters are either literals or references into the case data model.
A reference is a short string whose prefix selects the data set and whose
postfix selects the part of the value:

    reference := prefix field ['?'] [source [method]]
    prefix    := '@' (stored case value) | '#' (case change being built)
    source    := .Value | .Start | .End | .Period | .FieldAttribute | .ValueAttribute
    method    := '.' Name ['(' params ')']

Examples:
    "@Salary"                               case value, mandatory
    "@Salary?"                              case value, optional
    "#EmploymentLevel.Start"                start date of the case change
    "@Contract.Period.TotalDays()"          value method on the period
    "#Wage.FieldAttribute.Decimal(limit)"   typed field attribute
    "#Wage.ValueAttribute"                  value attribute container (setter target)

Anything not starting with '@' or '#' is a literal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from caserules.constants import (
    CASE_CHANGE_MARKER,
    CASE_VALUE_MARKER,
    METHOD_SEPARATOR,
    OPTIONAL_FIELD_MARKER,
    POSTFIX_END,
    POSTFIX_FIELD_ATTRIBUTE,
    POSTFIX_PERIOD,
    POSTFIX_START,
    POSTFIX_VALUE,
    POSTFIX_VALUE_ATTRIBUTE,
)
from caserules.expressions import ExpressionSyntaxError, parse_call
from caserules.values import ValueKind


class ReferenceKind(Enum):
    """Classification of an action value input."""
    LITERAL = "Literal"
    CASE_VALUE = "CaseValueReference"
    CASE_CHANGE = "CaseChangeReference"
    CASE_FIELD_ATTRIBUTE = "CaseFieldAttribute"
    CASE_VALUE_ATTRIBUTE = "CaseValueAttribute"


class ValueSource(Enum):
    """Part of a case value addressed by a reference."""
    VALUE = "Value"
    START = "Start"
    END = "End"
    PERIOD = "Period"
    FIELD_ATTRIBUTE = "FieldAttribute"
    VALUE_ATTRIBUTE = "ValueAttribute"

    @property
    def is_attribute(self) -> bool:
        return self in (ValueSource.FIELD_ATTRIBUTE, ValueSource.VALUE_ATTRIBUTE)


NAME_CHARACTERS = " _"

SOURCE_POSTFIXES = (
    (POSTFIX_VALUE, ValueSource.VALUE),
    (POSTFIX_START, ValueSource.START),
    (POSTFIX_END, ValueSource.END),
    (POSTFIX_PERIOD, ValueSource.PERIOD),
    (POSTFIX_FIELD_ATTRIBUTE, ValueSource.FIELD_ATTRIBUTE),
    (POSTFIX_VALUE_ATTRIBUTE, ValueSource.VALUE_ATTRIBUTE),
)


class ReferenceSyntaxError(ValueError):
    """Malformed reference string in a case or action configuration."""

    def __init__(self, reference: str, reason: str):
        super().__init__(f"Invalid reference {reference!r}: {reason}")
        self.reference = reference
        self.reason = reason


@dataclass(frozen=True)
class Reference:
    """
    A parsed field reference.

    Attributes:
        raw: The reference string as configured.
        kind: Reference classification (never LITERAL).
        change: True for case change references ('#'), False for case values ('@').
        source: Addressed part of the value.
        field: Referenced case field name.
        mandatory: False when the reference carries the optional marker.
        method: Value method expression applied after resolution, e.g. "Round()".
        attribute_key: Attribute name embedded in an attribute reference.
        attribute_type: Attribute value kind embedded in an attribute reference.
    """
    raw: str
    kind: ReferenceKind
    change: bool
    source: ValueSource
    field: str
    mandatory: bool = True
    method: Optional[str] = None
    attribute_key: Optional[str] = None
    attribute_type: Optional[ValueKind] = None

    @property
    def label(self) -> str:
        """Field label for messages: "Field" or "Field.Start"."""
        if self.source == ValueSource.VALUE:
            return self.field
        return f"{self.field}.{self.source.value}"

    @property
    def source_kind(self) -> Optional[ValueKind]:
        """Kind implied by the source alone (dates and periods)."""
        if self.source in (ValueSource.START, ValueSource.END):
            return ValueKind.DATETIME
        if self.source == ValueSource.PERIOD:
            return ValueKind.TIMESPAN
        if self.source.is_attribute:
            return self.attribute_type
        return None


# =============================================================================
# REFERENCE PARSER
# =============================================================================

class ReferenceParser:
    """
    Parses reference strings into Reference objects.

    The source postfix is located by scanning the field name: letters and
    digits belong to the name, inner dots are allowed unless they open one of
    the postfixes. "Contract.StartDate" is a plain field, "Contract.Start" is
    the start of field "Contract".
    """

    def parse(self, raw: Any) -> Optional[Reference]:
        """
        Parse a raw input.

        Args:
            raw: Any action parameter value.

        Returns:
            The Reference, or None for literals.

        Raises:
            ReferenceSyntaxError: If the input is a malformed reference.
        """
        if not isinstance(raw, str):
            return None
        text = raw.strip()
        if not text or text[0] not in (CASE_CHANGE_MARKER, CASE_VALUE_MARKER):
            return None

        change = text[0] == CASE_CHANGE_MARKER
        body = text[1:].strip()
        mandatory = True
        if body.endswith(OPTIONAL_FIELD_MARKER):
            mandatory = False
            body = body.rstrip(OPTIONAL_FIELD_MARKER).strip()
        elif f"{OPTIONAL_FIELD_MARKER}{METHOD_SEPARATOR}" in body:
            mandatory = False
            body = body.replace(OPTIONAL_FIELD_MARKER, "", 1)

        source = ValueSource.VALUE
        field_name = body
        method = None
        for postfix, candidate in SOURCE_POSTFIXES:
            match = self._split_source(text, body, postfix)
            if match is not None:
                field_name, method = match
                source = candidate
                break
        else:
            if "(" in body or ")" in body:
                raise ReferenceSyntaxError(text, "value method without value source")

        if field_name.endswith(OPTIONAL_FIELD_MARKER):
            mandatory = False
            field_name = field_name.rstrip(OPTIONAL_FIELD_MARKER)
        field_name = field_name.strip()
        if not field_name:
            raise ReferenceSyntaxError(text, "missing field name")

        attribute_key = None
        attribute_type = None
        if source.is_attribute and method:
            attribute_key, attribute_type = self._parse_attribute(text, method)
            method = None

        return Reference(
            raw=text,
            kind=_reference_kind(change, source),
            change=change,
            source=source,
            field=field_name,
            mandatory=mandatory,
            method=method,
            attribute_key=attribute_key,
            attribute_type=attribute_type,
        )

    def _split_source(self, text: str, body: str, postfix: str) -> Optional[Tuple[str, Optional[str]]]:
        """Split body at a source postfix into (field, method)."""
        index = marker_index(body, postfix)
        if index < 0:
            return None
        end = index + len(postfix)
        if end == len(body):
            return body[:index], None
        # postfix is a prefix of a longer name segment, e.g. ".StartDate"
        if body[end].isalpha():
            return None

        method = body[end:]
        if not method.startswith(METHOD_SEPARATOR):
            raise ReferenceSyntaxError(text, f"method must start with '{METHOD_SEPARATOR}'")
        method = method[len(METHOD_SEPARATOR):].strip()
        if not method:
            raise ReferenceSyntaxError(text, "empty method")
        try:
            parse_call(method)
        except ExpressionSyntaxError as exc:
            raise ReferenceSyntaxError(text, str(exc)) from exc
        return body[:index], method

    def _parse_attribute(self, text: str, method: str) -> Tuple[str, ValueKind]:
        """Parse an attribute method "<Kind>(<key>)"."""
        name, parameters = parse_call(method)
        attribute_type = ValueKind.from_name(name)
        if attribute_type is None:
            raise ReferenceSyntaxError(text, f"unknown attribute type {name}")
        if not parameters or not parameters[0]:
            raise ReferenceSyntaxError(text, "missing attribute key")
        return parameters[0].strip().strip("'\""), attribute_type


def marker_index(expression: str, marker: str) -> int:
    """
    Position of a postfix marker within a field expression.

    Letters, digits, blanks and underscores are skipped; the first other character must start
    the marker, except for a dot which continues a dotted field name.

    Returns:
        Index of the marker, or -1.
    """
    for index, char in enumerate(expression):
        if char.isalnum() or char in NAME_CHARACTERS:
            continue
        if expression.startswith(marker, index):
            return index
        if char == ".":
            continue
        break
    return -1


def _reference_kind(change: bool, source: ValueSource) -> ReferenceKind:
    if source == ValueSource.FIELD_ATTRIBUTE:
        return ReferenceKind.CASE_FIELD_ATTRIBUTE
    if source == ValueSource.VALUE_ATTRIBUTE:
        return ReferenceKind.CASE_VALUE_ATTRIBUTE
    return ReferenceKind.CASE_CHANGE if change else ReferenceKind.CASE_VALUE


_DEFAULT_PARSER = ReferenceParser()


def parse_reference(raw: Any) -> Optional[Reference]:
    """Parse a raw input with the default parser (None for literals)."""
    return _DEFAULT_PARSER.parse(raw)


def is_reference(raw: Any) -> bool:
    """Check whether a raw input is reference syntax (without validating it)."""
    return isinstance(raw, str) and raw.strip()[:1] in (CASE_CHANGE_MARKER, CASE_VALUE_MARKER)


# =============================================================================
# REFERENCE BUILDERS
# =============================================================================
# Build reference strings from field names, idempotent on existing markers

def _ensure_start(reference: str, marker: str) -> str:
    reference = reference.strip()
    if reference.startswith((CASE_CHANGE_MARKER, CASE_VALUE_MARKER)):
        reference = reference[1:]
    return f"{marker}{reference}"


def _ensure_end(reference: str, postfix: str) -> str:
    reference = reference.strip()
    return reference if reference.endswith(postfix) else f"{reference}{postfix}"


def to_case_change_reference(reference: str) -> str:
    return _ensure_start(reference, CASE_CHANGE_MARKER)


def to_case_value_reference(reference: str) -> str:
    return _ensure_start(reference, CASE_VALUE_MARKER)


def to_value_reference(reference: str) -> str:
    return _ensure_end(reference, POSTFIX_VALUE)


def to_start_reference(reference: str) -> str:
    return _ensure_end(reference, POSTFIX_START)


def to_end_reference(reference: str) -> str:
    return _ensure_end(reference, POSTFIX_END)


def to_field_attribute_reference(reference: str) -> str:
    return _ensure_end(reference, POSTFIX_FIELD_ATTRIBUTE)


def to_value_attribute_reference(reference: str) -> str:
    return _ensure_end(reference, POSTFIX_VALUE_ATTRIBUTE)


def to_case_change_value_reference(field: str) -> str:
    return to_value_reference(to_case_change_reference(field))


def to_case_change_start_reference(field: str) -> str:
    return to_start_reference(to_case_change_reference(field))


def to_case_change_end_reference(field: str) -> str:
    return to_end_reference(to_case_change_reference(field))


def to_case_change_field_attribute_reference(field: str) -> str:
    return to_field_attribute_reference(to_case_change_reference(field))


def to_case_change_value_attribute_reference(field: str) -> str:
    return to_value_attribute_reference(to_case_change_reference(field))


def to_case_value_value_reference(field: str) -> str:
    return to_value_reference(to_case_value_reference(field))
