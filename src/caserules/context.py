"""
Pipeline Context: per-invocation state shared by the actions of one pipeline run.

A context carries the host handle, the pipeline kind, the optional case field
the actions are scoped to, and the ordered list of issues raised so far. The
dispatcher reads the issues to decide short-circuiting; it creates one context
per pipeline invocation and one sub-context per field during field passes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

from caserules.constants import DEFAULT_VALUE_DATE_OFFSET, ISSUE_TEMPLATES
from caserules.values import format_value

if TYPE_CHECKING:
    from caserules.host import CaseHost


class PipelineKind(Enum):
    """Pipelines the rule actions are registered for."""
    AVAILABLE = "Available"
    BUILD = "Build"
    VALIDATE = "Validate"
    RELATION_BUILD = "RelationBuild"
    RELATION_VALIDATE = "RelationValidate"

    @property
    def is_relation(self) -> bool:
        return self in (PipelineKind.RELATION_BUILD, PipelineKind.RELATION_VALIDATE)

    @property
    def stops_on_issue(self) -> bool:
        """Gate pipelines stop at the first action raising an issue."""
        return self in (PipelineKind.AVAILABLE, PipelineKind.VALIDATE, PipelineKind.RELATION_VALIDATE)

    @classmethod
    def from_name(cls, name: str) -> "PipelineKind":
        """
        Look up a pipeline by value or member name, ignoring case and separators.

        Raises:
            ValueError: If the name matches no pipeline.
        """
        key = name.strip().replace("_", "").replace("-", "").lower()
        for kind in cls:
            if key in (kind.value.lower(), kind.name.replace("_", "").lower()):
                return kind
        raise ValueError(f"Unknown pipeline '{name}'")


@dataclass
class Issue:
    """A validation issue, optionally scoped to a case field."""
    message: str
    field_name: Optional[str] = None
    code: Optional[str] = None

    def __str__(self) -> str:
        if self.field_name:
            return f"{self.field_name}: {self.message}"
        return self.message


def format_issue(code: str, *args: Any) -> str:
    """
    Render a coded issue message.

    Raises:
        KeyError: If the issue code has no template.
    """
    template = ISSUE_TEMPLATES[code]
    return template.format(*(format_value(arg) for arg in args))


@dataclass
class ActionContext:
    """
    State of one pipeline invocation.

    Attributes:
        host: Case data the actions read and write.
        pipeline: The running pipeline.
        case_field_name: Field the actions are scoped to (field passes only).
        value_date: Evaluation date of case value lookups.
        issues: Issues raised so far, in order.
    """
    host: "CaseHost"
    pipeline: PipelineKind
    case_field_name: Optional[str] = None
    value_date: Optional[datetime] = None
    issues: List[Issue] = field(default_factory=list)

    @property
    def evaluation_date(self) -> datetime:
        """Value date, defaulting to the current moment plus the lookup offset."""
        if self.value_date is not None:
            return self.value_date
        return datetime.now() + DEFAULT_VALUE_DATE_OFFSET

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    def add_issue(self, message: str, code: Optional[str] = None) -> Issue:
        """Record an issue scoped to the context field."""
        issue = Issue(message=message, field_name=self.case_field_name, code=code)
        self.issues.append(issue)
        return issue

    def add_coded_issue(self, code: str, *args: Any) -> Issue:
        """Record an issue rendered from its code template."""
        return self.add_issue(format_issue(code, *args), code=code)

    def clear_issues(self) -> None:
        self.issues.clear()

    def for_field(self, field_name: str) -> "ActionContext":
        """Sub-context for the actions of one case field."""
        return ActionContext(
            host=self.host,
            pipeline=self.pipeline,
            case_field_name=field_name,
            value_date=self.value_date,
        )

    def report_issues(self) -> int:
        """Copy all issues to the host; returns the number of reported issues."""
        for issue in self.issues:
            self.host.report_issue(issue.field_name, issue.message)
        return len(self.issues)
