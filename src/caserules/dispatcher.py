"""
Action Dispatcher: runs configured rule actions against a case.

Dispatch of one pipeline invocation:
    1. Compile: parse every configured expression, look up the actions and
       bind their parameters. Configuration defects raise before any action runs.
    2. Run: invoke the actions in configured order against the pipeline context.

Short-circuit policy per pipeline:
    Available          stop at the first issue, failed result = unavailable
    Build              never stop, every action runs
    Validate           field pass (stops at the first failing field), then case pass;
                       each pass stops at the first issue and reports to the host
    RelationBuild      never stop
    RelationValidate   stop at the first issue and report to the host

Conditional expressions ("Cond ? A : B") run the condition action against the
same context. The condition holds when it raised no issues; its issues are
discarded afterwards.

Build and RelationBuild also resolve the check actions of Validate and
RelationValidate, so a build rule can branch on "ValueEqual(5) ? SetValue(1) : SetValue(2)".
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import caserules.actions  # noqa: F401  (registers the built-in actions)
from caserules.config import EngineConfig
from caserules.context import ActionContext, Issue, PipelineKind
from caserules.expressions import (
    ActionExpression,
    ConditionNode,
    ExpressionSyntaxError,
    is_disabled,
    parse_condition,
)
from caserules.host import CaseHost
from caserules.references import ReferenceSyntaxError
from caserules.registry import (
    ACTION_REGISTRY,
    ActionConfigurationError,
    ActionDescriptor,
    ActionRegistry,
)

logger = logging.getLogger(__name__)

# Build pipelines may also call the check actions of their validate pipeline,
# e.g. as condition of "ValueEqual(5) ? SetValue(1) : SetValue(2)".
FALLBACK_PIPELINES = {
    PipelineKind.BUILD: (PipelineKind.VALIDATE,),
    PipelineKind.RELATION_BUILD: (PipelineKind.RELATION_VALIDATE,),
}


class ActionInvocationError(RuntimeError):
    """Raised when a rule action fails with an unexpected error."""

    def __init__(self, expression: str, cause: Exception):
        super().__init__(f"Action {expression} failed: {cause}")
        self.expression = expression
        self.cause = cause


@dataclass
class BoundAction:
    """An action expression bound to its descriptor and arguments."""
    expression: ActionExpression
    descriptor: ActionDescriptor
    arguments: List[object]


@dataclass
class CompiledEntry:
    """A compiled configuration entry (plain action or condition tree)."""
    expression: str
    action: BoundAction
    invert: bool = False
    consequent: List["CompiledEntry"] = field(default_factory=list)
    alternative: List["CompiledEntry"] = field(default_factory=list)
    is_condition: bool = False


@dataclass
class DispatchResult:
    """
    Result of a pipeline invocation.

    Attributes:
        success: False if any issue remained.
        issues: Issues of the invocation, in order.
        invoked: Names of the invoked actions, in invocation order.
    """
    success: bool
    issues: List[Issue] = field(default_factory=list)
    invoked: List[str] = field(default_factory=list)

    def merge(self, other: "DispatchResult") -> None:
        self.success = self.success and other.success
        self.issues.extend(other.issues)
        self.invoked.extend(other.invoked)


class ActionDispatcher:
    """
    Runs the configured actions of a case pipeline.

    The dispatcher is stateless between invocations; every run creates its
    own contexts.
    """

    def __init__(self, registry: Optional[ActionRegistry] = None, config: Optional[EngineConfig] = None):
        self.registry = registry or ACTION_REGISTRY
        self.config = config or EngineConfig()

    # =========================================================================
    # Compilation
    # =========================================================================

    def compile(self, pipeline: PipelineKind, expressions: Sequence[str],
                field_scope: bool = False) -> List[CompiledEntry]:
        """
        Compile configured expressions of a pipeline.

        Args:
            pipeline: The pipeline the expressions belong to.
            expressions: Configured action expressions, in order.
            field_scope: True when the expressions run in a field context.

        Returns:
            Compiled entries; disabled expressions are dropped.

        Raises:
            ActionConfigurationError: On syntax errors, unknown actions or bad parameters.
            ReferenceSyntaxError: On malformed reference parameters.
        """
        entries = []
        for expression in expressions:
            if not expression or not expression.strip():
                continue
            if is_disabled(expression):
                logger.debug(f"{pipeline.value}: skipping disabled action {expression}")
                continue
            try:
                node = parse_condition(expression)
            except ExpressionSyntaxError as e:
                raise ActionConfigurationError(f"Invalid action expression '{expression}': {e}") from e
            entries.append(self._compile_node(pipeline, node, field_scope))
        return entries

    def _compile_node(self, pipeline: PipelineKind, node: ConditionNode, field_scope: bool) -> CompiledEntry:
        return CompiledEntry(
            expression=node.expression,
            action=self._bind(pipeline, node.action, field_scope),
            invert=node.invert,
            consequent=[self._compile_node(pipeline, child, field_scope) for child in node.consequent],
            alternative=[self._compile_node(pipeline, child, field_scope) for child in node.alternative],
            is_condition=node.is_condition,
        )

    def _bind(self, pipeline: PipelineKind, expression: ActionExpression, field_scope: bool) -> BoundAction:
        namespace = expression.namespace or self.config.default_namespace
        descriptor = self._lookup(pipeline, expression.name, namespace)
        if descriptor.field_scoped and not field_scope:
            raise ActionConfigurationError(
                f"Action {descriptor.name} requires a case field: {expression}"
            )
        return BoundAction(expression, descriptor, descriptor.bind(expression))

    def _lookup(self, pipeline: PipelineKind, name: str, namespace: str) -> ActionDescriptor:
        for kind in (pipeline,) + FALLBACK_PIPELINES.get(pipeline, ()):
            descriptor = self.registry.get_optional(kind, name, namespace)
            if descriptor is not None:
                return descriptor
        return self.registry.get(pipeline, name, namespace)

    # =========================================================================
    # Invocation
    # =========================================================================

    def new_context(self, host: CaseHost, pipeline: PipelineKind,
                    case_field_name: Optional[str] = None) -> ActionContext:
        """Create the context of a pipeline invocation."""
        return ActionContext(
            host=host,
            pipeline=pipeline,
            case_field_name=case_field_name,
            value_date=datetime.now() + self.config.value_date_offset,
        )

    def invoke(self, context: ActionContext, expressions: Sequence[str]) -> DispatchResult:
        """
        Compile and run expressions against a context.

        The short-circuit policy follows the context pipeline.
        """
        entries = self.compile(context.pipeline, expressions, context.case_field_name is not None)
        return self.run_entries(context, entries)

    def run_entries(self, context: ActionContext, entries: Sequence[CompiledEntry]) -> DispatchResult:
        """Run compiled entries in order."""
        invoked: List[str] = []
        for entry in entries:
            self._run_entry(context, entry, invoked)
            if context.has_issues and context.pipeline.stops_on_issue:
                logger.debug(f"{context.pipeline.value}: stop after {entry.expression}")
                break
        return DispatchResult(success=not context.has_issues, issues=list(context.issues), invoked=invoked)

    def _run_entry(self, context: ActionContext, entry: CompiledEntry, invoked: List[str]) -> None:
        if not entry.is_condition:
            self._invoke_action(context, entry.action, invoked)
            return

        issue_count = len(context.issues)
        self._invoke_action(context, entry.action, invoked)
        passed = len(context.issues) == issue_count
        del context.issues[issue_count:]
        if entry.invert:
            passed = not passed

        branch = entry.consequent if passed else entry.alternative
        logger.debug(f"Condition {entry.action.expression} -> {passed}")
        for child in branch:
            self._run_entry(context, child, invoked)

    def _invoke_action(self, context: ActionContext, bound: BoundAction, invoked: List[str]) -> None:
        logger.debug(f"{context.pipeline.value}: invoke {bound.expression}"
                     + (f" on {context.case_field_name}" if context.case_field_name else ""))
        try:
            bound.descriptor.func(context, *bound.arguments)
        except (ActionConfigurationError, ReferenceSyntaxError):
            raise
        except Exception as e:
            raise ActionInvocationError(str(bound.expression), e) from e
        invoked.append(bound.descriptor.name)

    # =========================================================================
    # Pipelines
    # =========================================================================

    def _compile_fields(self, host: CaseHost, pipeline: PipelineKind) -> List[Tuple[str, List[CompiledEntry]]]:
        compiled = []
        for field_name in host.list_fields():
            entries = self.compile(pipeline, host.list_configured_actions(pipeline, field_name), field_scope=True)
            if entries:
                compiled.append((field_name, entries))
        return compiled

    def run_available(self, host: CaseHost) -> DispatchResult:
        """Case availability: stops at the first issue."""
        pipeline = PipelineKind.AVAILABLE
        entries = self.compile(pipeline, host.list_configured_actions(pipeline))
        result = self.run_entries(self.new_context(host, pipeline), entries)
        self._log_result(pipeline, result)
        return result

    def run_build(self, host: CaseHost) -> DispatchResult:
        """Case build: field actions then case actions, never stops."""
        return self._run_build(host, PipelineKind.BUILD)

    def run_relation_build(self, host: CaseHost) -> DispatchResult:
        """Case relation build: case actions, never stops."""
        return self._run_build(host, PipelineKind.RELATION_BUILD)

    def _run_build(self, host: CaseHost, pipeline: PipelineKind) -> DispatchResult:
        field_entries = self._compile_fields(host, pipeline) if not pipeline.is_relation else []
        case_entries = self.compile(pipeline, host.list_configured_actions(pipeline))

        result = DispatchResult(success=True)
        for field_name, entries in field_entries:
            result.merge(self.run_entries(self.new_context(host, pipeline, field_name), entries))
        result.merge(self.run_entries(self.new_context(host, pipeline), case_entries))
        if result.issues:
            logger.warning(f"{pipeline.value}: {len(result.issues)} issues during build")
        self._log_result(pipeline, result)
        return result

    def run_validate(self, host: CaseHost) -> DispatchResult:
        """
        Case validation.

        The field pass stops at the first failing field, the case pass at the
        first issue. Issues of a failed pass are reported to the host.
        """
        pipeline = PipelineKind.VALIDATE
        field_entries = self._compile_fields(host, pipeline)
        case_entries = self.compile(pipeline, host.list_configured_actions(pipeline))

        result = DispatchResult(success=True)
        for field_name, entries in field_entries:
            context = self.new_context(host, pipeline, field_name)
            result.merge(self.run_entries(context, entries))
            if context.has_issues:
                return self._fail(context, result)

        context = self.new_context(host, pipeline)
        result.merge(self.run_entries(context, case_entries))
        if context.has_issues:
            return self._fail(context, result)
        self._log_result(pipeline, result)
        return result

    def run_relation_validate(self, host: CaseHost) -> DispatchResult:
        """Case relation validation: stops at the first issue and reports it."""
        pipeline = PipelineKind.RELATION_VALIDATE
        entries = self.compile(pipeline, host.list_configured_actions(pipeline))
        context = self.new_context(host, pipeline)
        result = self.run_entries(context, entries)
        if context.has_issues:
            return self._fail(context, result)
        self._log_result(pipeline, result)
        return result

    def run(self, host: CaseHost, pipeline: PipelineKind) -> DispatchResult:
        """Run a pipeline by kind."""
        runners = {
            PipelineKind.AVAILABLE: self.run_available,
            PipelineKind.BUILD: self.run_build,
            PipelineKind.VALIDATE: self.run_validate,
            PipelineKind.RELATION_BUILD: self.run_relation_build,
            PipelineKind.RELATION_VALIDATE: self.run_relation_validate,
        }
        return runners[pipeline](host)

    def _fail(self, context: ActionContext, result: DispatchResult) -> DispatchResult:
        if self.config.report_issues:
            context.report_issues()
        result.success = False
        self._log_result(context.pipeline, result)
        return result

    def _log_result(self, pipeline: PipelineKind, result: DispatchResult) -> None:
        status = "passed" if result.success else "failed"
        logger.info(f"{pipeline.value} pipeline {status}: "
                    f"{len(result.invoked)} actions invoked, {len(result.issues)} issues")
