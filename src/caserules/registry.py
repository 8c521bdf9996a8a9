"""
Action Registry: named rule actions and their descriptors.

Rule actions are plain functions taking the action context first, followed by
their configured parameters. The action decorator records a descriptor for
each of them in the registration table; the dispatcher looks actions up by
pipeline, namespace and name.

    @action("MinLimit", PipelineKind.BUILD,
            ActionParameter("minimum", value_kinds=NUMERIC_AND_DATE),
            categories=(CATEGORY_FIELD_VALUE,), field_scoped=True)
    def min_limit(context, minimum):
        ...

The table is built once at import time and treated as read-only afterwards.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import pandas as pd

from caserules.constants import DEFAULT_NAMESPACE
from caserules.context import PipelineKind
from caserules.expressions import ActionExpression
from caserules.references import ReferenceKind, is_reference, parse_reference
from caserules.values import ValueKind, coerce


class ActionConfigurationError(Exception):
    """Raised for defective action configuration (unknown action, bad parameters)."""
    pass


# =============================================================================
# DESCRIPTORS
# =============================================================================

@dataclass(frozen=True)
class ActionParameter:
    """
    Declared action parameter.

    Attributes:
        name: Parameter name.
        description: Parameter description.
        value_kinds: Accepted value kinds.
        reference_kinds: Accepted reference kinds (empty: literals and any reference).
        optional: Whether the parameter may be omitted.
        default: Value bound for an omitted optional parameter.
        literal_kind: Bind as a typed literal of this kind instead of a raw input.
    """
    name: str
    description: str = ""
    value_kinds: Tuple[ValueKind, ...] = ()
    reference_kinds: Tuple[ReferenceKind, ...] = ()
    optional: bool = False
    default: Any = None
    literal_kind: Optional[ValueKind] = None


@dataclass(frozen=True)
class ActionDescriptor:
    """Static metadata of a named rule action."""
    name: str
    pipelines: FrozenSet[PipelineKind]
    func: Callable[..., None]
    namespace: str = DEFAULT_NAMESPACE
    description: str = ""
    categories: Tuple[str, ...] = ()
    parameters: Tuple[ActionParameter, ...] = ()
    issues: Tuple[str, ...] = ()
    field_scoped: bool = False

    @property
    def key(self) -> str:
        return f"{self.namespace}.{self.name}"

    @property
    def required_count(self) -> int:
        return sum(1 for parameter in self.parameters if not parameter.optional)

    def bind(self, expression: ActionExpression) -> List[Any]:
        """
        Bind the configured parameters of an expression.

        Raw parameters stay unresolved; they are wrapped into action values
        when the action runs. Malformed references are rejected here.

        Raises:
            ActionConfigurationError: On a wrong parameter count or an invalid literal.
        """
        configured = expression.parameters
        if len(configured) > len(self.parameters):
            raise ActionConfigurationError(
                f"Too many parameters for action {self.name} "
                f"({len(configured)} > {len(self.parameters)}): {expression}"
            )

        arguments = []
        for index, parameter in enumerate(self.parameters):
            raw = configured[index] if index < len(configured) else None
            if raw is None:
                if not parameter.optional:
                    raise ActionConfigurationError(
                        f"Missing parameter {parameter.name} for action {self.name}: {expression}"
                    )
                arguments.append(parameter.default)
                continue

            if parameter.literal_kind is not None:
                value = coerce(raw, parameter.literal_kind)
                if value is None:
                    raise ActionConfigurationError(
                        f"Invalid {parameter.literal_kind.value} value {raw!r} "
                        f"for parameter {parameter.name} of action {self.name}"
                    )
                arguments.append(value)
                continue

            if is_reference(raw):
                # raises ReferenceSyntaxError on malformed references
                parse_reference(raw)
            arguments.append(raw)
        return arguments


# =============================================================================
# REGISTRY
# =============================================================================

class ActionRegistry:
    """
    Registration table of rule actions.

    Enforces:
    - Single action per pipeline, namespace and name
    - No registrations after freeze
    - Lookup by pipeline and name
    """

    def __init__(self):
        self._actions: Dict[PipelineKind, Dict[str, ActionDescriptor]] = {kind: {} for kind in PipelineKind}
        self._frozen: bool = False

    def register(self, descriptor: ActionDescriptor) -> None:
        """
        Register an action descriptor for all of its pipelines.

        Raises:
            ActionConfigurationError: If the action is already registered.
            RuntimeError: If the registry is frozen.
        """
        if self._frozen:
            raise RuntimeError(f"Registry is frozen. Cannot register '{descriptor.key}'")
        for pipeline in descriptor.pipelines:
            if descriptor.key in self._actions[pipeline]:
                raise ActionConfigurationError(
                    f"Action '{descriptor.key}' already registered for {pipeline.value}"
                )
        for pipeline in descriptor.pipelines:
            self._actions[pipeline][descriptor.key] = descriptor

    def freeze(self) -> None:
        """Freeze registry - no more registrations allowed."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get(self, pipeline: PipelineKind, name: str, namespace: str = DEFAULT_NAMESPACE) -> ActionDescriptor:
        """
        Get an action by pipeline and name.

        Raises:
            ActionConfigurationError: If the action is unknown for the pipeline.
        """
        descriptor = self.get_optional(pipeline, name, namespace)
        if descriptor is None:
            raise ActionConfigurationError(f"Unknown {pipeline.value} action '{namespace}.{name}'")
        return descriptor

    def get_optional(self, pipeline: PipelineKind, name: str,
                     namespace: str = DEFAULT_NAMESPACE) -> Optional[ActionDescriptor]:
        return self._actions[pipeline].get(f"{namespace}.{name}")

    def contains(self, pipeline: PipelineKind, name: str, namespace: str = DEFAULT_NAMESPACE) -> bool:
        return self.get_optional(pipeline, name, namespace) is not None

    def for_pipeline(self, pipeline: PipelineKind) -> List[ActionDescriptor]:
        """Actions of a pipeline, sorted by key."""
        return [self._actions[pipeline][key] for key in sorted(self._actions[pipeline])]

    def counts(self) -> Dict[PipelineKind, int]:
        """Number of actions per pipeline."""
        return {pipeline: len(actions) for pipeline, actions in self._actions.items()}

    def to_frame(self, pipeline: Optional[PipelineKind] = None) -> pd.DataFrame:
        """Action catalogue as a table (one row per pipeline and action)."""
        pipelines = [pipeline] if pipeline else list(PipelineKind)
        rows = []
        for kind in pipelines:
            for descriptor in self.for_pipeline(kind):
                rows.append({
                    "pipeline": kind.value,
                    "namespace": descriptor.namespace,
                    "name": descriptor.name,
                    "parameters": ", ".join(
                        f"{p.name}?" if p.optional else p.name for p in descriptor.parameters
                    ),
                    "value_kinds": _parameter_kinds(descriptor, "value_kinds"),
                    "reference_kinds": _parameter_kinds(descriptor, "reference_kinds"),
                    "categories": ", ".join(descriptor.categories),
                    "field_scoped": descriptor.field_scoped,
                    "description": descriptor.description,
                })
        return pd.DataFrame(rows, columns=[
            "pipeline", "namespace", "name", "parameters", "value_kinds", "reference_kinds",
            "categories", "field_scoped", "description",
        ])

    def clear(self) -> None:
        """Clear all registered actions. Use only in tests."""
        for actions in self._actions.values():
            actions.clear()
        self._frozen = False


def _parameter_kinds(descriptor: ActionDescriptor, attribute: str) -> str:
    """Accepted kinds per parameter, e.g. "minimum: Integer|Decimal"."""
    return "; ".join(
        f"{parameter.name}: " + "|".join(kind.value for kind in getattr(parameter, attribute))
        for parameter in descriptor.parameters
        if getattr(parameter, attribute)
    )


# Global registry instance
ACTION_REGISTRY = ActionRegistry()


def action(
    name: str,
    pipelines: Union[PipelineKind, Iterable[PipelineKind]],
    *parameters: ActionParameter,
    description: str = "",
    categories: Tuple[str, ...] = (),
    issues: Tuple[str, ...] = (),
    namespace: str = DEFAULT_NAMESPACE,
    field_scoped: bool = False,
    registry: Optional[ActionRegistry] = None,
) -> Callable[[Callable[..., None]], Callable[..., None]]:
    """
    Decorator registering a rule action.

    Args:
        name: Configured action name.
        pipelines: Pipeline(s) the action belongs to.
        *parameters: Declared parameters, in call order.
        description: Action description.
        categories: Category labels.
        issues: Issue codes the action may raise.
        namespace: Action namespace.
        field_scoped: The action requires a case field context.
        registry: Target registry, defaults to ACTION_REGISTRY.
    """
    if isinstance(pipelines, PipelineKind):
        pipelines = (pipelines,)

    def decorator(func: Callable[..., None]) -> Callable[..., None]:
        descriptor = ActionDescriptor(
            name=name,
            pipelines=frozenset(pipelines),
            func=func,
            namespace=namespace,
            description=description or (func.__doc__ or "").strip().split("\n")[0],
            categories=tuple(categories),
            parameters=tuple(parameters),
            issues=tuple(issues),
            field_scoped=field_scoped,
        )
        (registry or ACTION_REGISTRY).register(descriptor)
        func.descriptor = descriptor
        return func

    return decorator
