"""
caserules: typed action values and rule dispatch for payroll cases.

Case rules are configured as short action expressions per pipeline:

    Available:         decide whether a case can be entered
    Build:             derive defaults, limits and input settings of the case change
    Validate:          check the case change before it is submitted
    RelationBuild:     derive target case values from a source case
    RelationValidate:  check a case relation

Layer Architecture:
    Value Model:       ValueKind, coercion and formatting
                           ↓
    References:        "@Field", "#Field.Start", "#Field.FieldAttribute.Decimal(limit)"
                           ↓
    Action Values:     typed resolution against the host (ActionValue)
                           ↓
    Actions:           registered rule actions (caserules.actions)
                           ↓
    Dispatcher:        pipeline policies, conditions, issue reporting

Usage:
    from caserules import ActionDispatcher, InMemoryCase, PipelineKind

    case = InMemoryCase.from_dict(document)
    result = ActionDispatcher().run(case, PipelineKind.VALIDATE)
    for issue in result.issues:
        print(issue)
"""

from caserules.values import ValueKind, coerce, format_value, infer_kind
from caserules.references import (
    Reference,
    ReferenceKind,
    ReferenceSyntaxError,
    ValueSource,
    parse_reference,
)
from caserules.expressions import (
    ActionExpression,
    ConditionNode,
    ExpressionSyntaxError,
    parse_action,
    parse_condition,
)
from caserules.context import ActionContext, Issue, PipelineKind
from caserules.action_value import ActionValue, ValueState
from caserules.host import (
    CaseHost,
    FieldDefinition,
    FieldValue,
    InMemoryCase,
    RelationCase,
    UnknownFieldError,
)
from caserules.registry import (
    ACTION_REGISTRY,
    ActionConfigurationError,
    ActionDescriptor,
    ActionParameter,
    ActionRegistry,
    action,
)
from caserules.config import EngineConfig
from caserules.dispatcher import ActionDispatcher, ActionInvocationError, DispatchResult

__version__ = "0.1.0"

__all__ = [
    # Values
    "ValueKind",
    "coerce",
    "format_value",
    "infer_kind",
    # References
    "Reference",
    "ReferenceKind",
    "ReferenceSyntaxError",
    "ValueSource",
    "parse_reference",
    # Expressions
    "ActionExpression",
    "ConditionNode",
    "ExpressionSyntaxError",
    "parse_action",
    "parse_condition",
    # Context
    "ActionContext",
    "Issue",
    "PipelineKind",
    # Action values
    "ActionValue",
    "ValueState",
    # Host
    "CaseHost",
    "FieldDefinition",
    "FieldValue",
    "InMemoryCase",
    "RelationCase",
    "UnknownFieldError",
    # Registry
    "ACTION_REGISTRY",
    "ActionConfigurationError",
    "ActionDescriptor",
    "ActionParameter",
    "ActionRegistry",
    "action",
    # Dispatch
    "ActionDispatcher",
    "ActionInvocationError",
    "DispatchResult",
    "EngineConfig",
]
