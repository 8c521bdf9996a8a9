"""
Action Value: typed resolution of action parameters.

An ActionValue wraps one raw action parameter. It classifies the input with
the reference parser, reads referenced data from the host, applies an optional
value method and coerces the result into the requested ValueKind.

Resolution outcomes (no transitions back, each value is single use):
    RESOLVED     a typed value is present
    UNFULFILLED  no value is available (absent literal or absent case data)
    INVALID      a value is present but cannot be represented in the kind

Only configuration defects raise (ReferenceSyntaxError for malformed
references and unknown value methods). Absent or unconvertible data is a
state the calling action turns into an issue.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Tuple

from caserules.methods import evaluate_method, get_method
from caserules.references import Reference, ReferenceKind, ValueSource, parse_reference
from caserules.values import ValueKind, coerce, format_value, infer_kind

if TYPE_CHECKING:
    from caserules.context import ActionContext

logger = logging.getLogger(__name__)


class ValueState(Enum):
    """Resolution state of an ActionValue."""
    RESOLVED = "Resolved"
    UNFULFILLED = "Unfulfilled"
    INVALID = "Invalid"


class ActionValue:
    """
    A resolved action parameter.

    Attributes:
        raw: The parameter as configured.
        reference: Parsed reference, None for literals.
        kind: Reference classification.
        value_type: Kind of the resolved value (None while unknown).
        resolved_value: The typed value, None unless resolved.
        mandatory_field: Whether an absent value is a missing required input.
        value_date: Date the case values were read for.
        state: Resolution state.
    """

    def __init__(
        self,
        raw: Any,
        reference: Optional[Reference],
        value_type: Optional[ValueKind],
        resolved_value: Any,
        state: ValueState,
        mandatory_field: bool,
        value_date: Optional[datetime] = None,
    ):
        self.raw = raw
        self.reference = reference
        self.value_type = value_type
        self.resolved_value = resolved_value if state == ValueState.RESOLVED else None
        self.state = state
        self.mandatory_field = mandatory_field
        self.value_date = value_date

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    @classmethod
    def resolve(
        cls,
        context: "ActionContext",
        raw: Any,
        kind: Optional[ValueKind] = None,
        value_date: Optional[datetime] = None,
    ) -> "ActionValue":
        """
        Resolve a raw action parameter.

        Args:
            context: The running action context (host access).
            raw: Literal or reference string.
            kind: Requested value kind. None keeps the natural kind of the input.
            value_date: Date for case value lookups, defaults to the context date.

        Returns:
            The ActionValue.

        Raises:
            ReferenceSyntaxError: If the input is a malformed reference.
        """
        value_date = value_date or context.evaluation_date
        reference = parse_reference(raw)
        if reference is None:
            return cls._resolve_literal(raw, kind, value_date)
        return cls._resolve_reference(context, raw, reference, kind, value_date)

    @classmethod
    def _resolve_literal(cls, raw: Any, kind: Optional[ValueKind], value_date: datetime) -> "ActionValue":
        value_type = kind or infer_kind(raw)
        if raw is None:
            return cls(raw, None, value_type, None, ValueState.UNFULFILLED, True, value_date)
        value = coerce(raw, value_type)
        state = ValueState.RESOLVED if value is not None else ValueState.INVALID
        return cls(raw, None, value_type, value, state, True, value_date)

    @classmethod
    def _resolve_reference(
        cls,
        context: "ActionContext",
        raw: Any,
        reference: Reference,
        kind: Optional[ValueKind],
        value_date: datetime,
    ) -> "ActionValue":
        value, natural_kind, field_mandatory = _read_source(context, reference, value_date)
        mandatory = reference.mandatory and field_mandatory

        if reference.method:
            if natural_kind is None:
                logger.debug(f"Method {reference.method} on untyped reference {reference.raw}")
                return cls(raw, reference, kind, None, ValueState.INVALID, mandatory, value_date)
            method, _ = get_method(natural_kind, reference.method)
            value = evaluate_method(
                reference.method,
                natural_kind,
                coerce(value, natural_kind),
                lambda parameter, parameter_kind: cls.resolve(
                    context, parameter, parameter_kind, value_date).resolved_value,
            )
            natural_kind = method.result_kind

        value_type = kind or natural_kind
        if value is None:
            return cls(raw, reference, value_type, None, ValueState.UNFULFILLED, mandatory, value_date)
        resolved = coerce(value, value_type)
        state = ValueState.RESOLVED if resolved is not None else ValueState.INVALID
        return cls(raw, reference, value_type, resolved, state, mandatory, value_date)

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    @property
    def kind(self) -> ReferenceKind:
        return self.reference.kind if self.reference else ReferenceKind.LITERAL

    @property
    def is_fulfilled(self) -> bool:
        return self.state == ValueState.RESOLVED

    @property
    def is_reference(self) -> bool:
        return self.reference is not None

    @property
    def is_case_value_reference(self) -> bool:
        return self.kind == ReferenceKind.CASE_VALUE

    @property
    def is_case_change_reference(self) -> bool:
        """Case change reference, including attribute references on the change ('#')."""
        return self.reference is not None and self.reference.change

    @property
    def is_case_field_attribute(self) -> bool:
        return self.kind == ReferenceKind.CASE_FIELD_ATTRIBUTE

    @property
    def is_case_value_attribute(self) -> bool:
        return self.kind == ReferenceKind.CASE_VALUE_ATTRIBUTE

    @property
    def reference_field(self) -> Optional[str]:
        return self.reference.field if self.reference else None

    @property
    def value_source(self) -> Optional[ValueSource]:
        return self.reference.source if self.reference else None

    @property
    def attribute_key(self) -> Optional[str]:
        return self.reference.attribute_key if self.reference else None

    @property
    def attribute_type(self) -> Optional[ValueKind]:
        return self.reference.attribute_type if self.reference else None

    def __str__(self) -> str:
        value = format_value(self.resolved_value)
        if self.reference is None:
            return value if self.is_fulfilled else format_value(self.raw)
        return f"{self.reference.label} {value}".rstrip()

    def __repr__(self) -> str:
        return f"ActionValue(raw={self.raw!r}, kind={self.kind.value}, state={self.state.value})"


# =============================================================================
# HOST READS
# =============================================================================

def _read_source(context: "ActionContext", reference: Reference,
                 value_date: datetime) -> Tuple[Any, Optional[ValueKind], bool]:
    """
    Read the referenced data from the host.

    Returns:
        Tuple of (raw value, natural kind, field mandatory flag).
    """
    host = context.host
    field_name = reference.field

    if reference.source == ValueSource.FIELD_ATTRIBUTE:
        if not reference.attribute_key:
            return None, None, False
        return host.get_field_attribute(field_name, reference.attribute_key), reference.attribute_type, True
    if reference.source == ValueSource.VALUE_ATTRIBUTE:
        if not reference.attribute_key:
            return None, None, False
        return host.get_value_attribute(field_name, reference.attribute_key), reference.attribute_type, True

    if host.get_value_type(field_name) is None:
        logger.warning(f"Reference {reference.raw} to unknown case field {field_name}")
        return None, reference.source_kind, False

    if reference.change:
        field_value = host.get_change_target(field_name)
    else:
        field_value = host.get_field_value(field_name, value_date)

    if reference.source == ValueSource.START:
        return field_value.start, ValueKind.DATETIME, field_value.mandatory
    if reference.source == ValueSource.END:
        return field_value.end, ValueKind.DATETIME, field_value.mandatory
    if reference.source == ValueSource.PERIOD:
        period = None
        if field_value.start is not None and field_value.end is not None:
            period = field_value.end - field_value.start
        return period, ValueKind.TIMESPAN, field_value.mandatory
    return field_value.value, field_value.kind, field_value.mandatory
