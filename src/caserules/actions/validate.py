"""
Case validate actions.

Validation actions raise coded issues (Issue.code) rendered from the issue
templates in caserules.constants. Actions without a source parameter are
field scoped: they check the case change of the field whose validate actions
are running.

    Field checks    Email, Regex, Defined, Undefined
    Compare         Equal ... Between, IsTrue, IsFalse (any reference source)
    Field compare   Value*, Start*, End* (case change of the current field)
    Text            MinLength, MaxLength, Length, LengthBetween, EqualText, NotEqualText
    Period          FieldPeriod* (named field), Period* (current field)
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from caserules.action_value import ActionValue
from caserules.actions.compare import (
    EQUAL,
    GREATER_EQUAL_THAN,
    GREATER_THAN,
    LESS_EQUAL_THAN,
    LESS_THAN,
    NOT_EQUAL,
    VALIDATE_POLICY,
    CompareOperator,
    check_boolean,
    compare_between,
    compare_values,
)
from caserules.constants import (
    CATEGORY_COMPARE,
    CATEGORY_FIELD_END,
    CATEGORY_FIELD_PERIOD,
    CATEGORY_FIELD_START,
    CATEGORY_FIELD_VALUE,
    CATEGORY_VALIDATE,
)
from caserules.context import ActionContext, PipelineKind
from caserules.references import (
    ReferenceKind,
    to_case_change_end_reference,
    to_case_change_reference,
    to_case_change_start_reference,
    to_case_change_value_reference,
    to_end_reference,
    to_start_reference,
)
from caserules.registry import ActionParameter, action
from caserules.values import ValueKind

EMAIL_PATTERN = re.compile(r"^(.+)@(.+)$")

ALL_KINDS = (ValueKind.STRING, ValueKind.BOOLEAN, ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME)
ORDERED_KINDS = (ValueKind.INTEGER, ValueKind.DECIMAL, ValueKind.DATETIME)
DATE_KINDS = (ValueKind.DATETIME,)

SOURCE = ActionParameter("source", "The source value", value_kinds=ALL_KINDS,
                         reference_kinds=(ReferenceKind.CASE_VALUE, ReferenceKind.CASE_CHANGE))
COMPARE_DATE = ActionParameter("compareDate", "The compare date for case values",
                               value_kinds=DATE_KINDS, optional=True)
FIELD_NAME = ActionParameter("fieldName", "The field name",
                             reference_kinds=(ReferenceKind.CASE_CHANGE, ReferenceKind.CASE_VALUE))
MOMENT = ActionParameter("moment", "The moment to test", value_kinds=DATE_KINDS)
CLOSED_PERIOD = ActionParameter("closedPeriod", "Test for closed period", value_kinds=(ValueKind.BOOLEAN,),
                                optional=True, default=False, literal_kind=ValueKind.BOOLEAN)
PERIOD_START = ActionParameter("periodStart", "The period start", value_kinds=DATE_KINDS)
PERIOD_END = ActionParameter("periodEnd", "The period end", value_kinds=DATE_KINDS)
IGNORE_CASE = ActionParameter("ignoreCase", "Ignore the character case", value_kinds=(ValueKind.BOOLEAN,),
                              optional=True, default=False, literal_kind=ValueKind.BOOLEAN)

COMPARE_OPERATIONS = (
    ("Equal", EQUAL, "equal"),
    ("NotEqual", NOT_EQUAL, "different"),
    ("GreaterThan", GREATER_THAN, "greater"),
    ("GreaterEqualThan", GREATER_EQUAL_THAN, "greater or equal"),
    ("LessThan", LESS_THAN, "smaller"),
    ("LessEqualThan", LESS_EQUAL_THAN, "smaller or equal"),
)


def _field_value(context: ActionContext, kind: Optional[ValueKind] = None) -> ActionValue:
    """Case change value of the context field."""
    return ActionValue.resolve(context, to_case_change_reference(context.case_field_name), kind)


# =============================================================================
# FIELD CHECKS
# =============================================================================

@action("Email", PipelineKind.VALIDATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "InvalidEmail"), field_scoped=True)
def email(context: ActionContext) -> None:
    """Validate field email address"""
    source_value = _field_value(context, ValueKind.STRING)
    if source_value.resolved_value is None:
        context.add_coded_issue("MissingCaseValue", context.case_field_name)
        return
    if not EMAIL_PATTERN.match(source_value.resolved_value):
        context.add_coded_issue("InvalidEmail", context.case_field_name, source_value.resolved_value)


@action("Regex", PipelineKind.VALIDATE,
        ActionParameter("pattern", "The regular expression", value_kinds=(ValueKind.STRING,),
                        literal_kind=ValueKind.STRING),
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "InvalidRegexMatch"), field_scoped=True)
def regex(context: ActionContext, pattern: str) -> None:
    """
    Validate regular expression pattern.

    The pattern may match anywhere in the value; anchor it for full matches.

    Raises:
        re.error: If the pattern does not compile.
    """
    source_value = _field_value(context, ValueKind.STRING)
    if source_value.resolved_value is None:
        context.add_coded_issue("MissingCaseValue", context.case_field_name)
        return
    if not re.search(pattern, source_value.resolved_value):
        context.add_coded_issue("InvalidRegexMatch", context.case_field_name, source_value.resolved_value)


@action("Defined", PipelineKind.VALIDATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("UndefinedValue",), field_scoped=True)
def defined(context: ActionContext) -> None:
    """Validate for available case value"""
    if _field_value(context).resolved_value is None:
        context.add_coded_issue("UndefinedValue", context.case_field_name)


@action("Undefined", PipelineKind.VALIDATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("DefinedValue",), field_scoped=True)
def undefined(context: ActionContext) -> None:
    """Validate for unavailable case value"""
    if _field_value(context).resolved_value is not None:
        context.add_coded_issue("DefinedValue", context.case_field_name)


# =============================================================================
# COMPARE
# =============================================================================

@action("IsTrue", PipelineKind.VALIDATE, SOURCE, COMPARE_DATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE),
        issues=("CompareInvalidSource", "CompareValueNotTrue"))
def is_true(context: ActionContext, source: Any, compare_date: Any = None) -> None:
    """Validate for true value"""
    check_boolean(context, source, True, compare_date, VALIDATE_POLICY)


@action("IsFalse", PipelineKind.VALIDATE, SOURCE, COMPARE_DATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE),
        issues=("CompareInvalidSource", "CompareValueNotFalse"))
def is_false(context: ActionContext, source: Any, compare_date: Any = None) -> None:
    """Validate for false value"""
    check_boolean(context, source, False, compare_date, VALIDATE_POLICY)


def _compare_issues(compare_operator: CompareOperator):
    return ("CompareInvalidSourceValue", "CompareMissingSourceValue",
            "CompareInvalidCompareValue", compare_operator.code)


def _source_compare(name: str, compare_operator: CompareOperator, description: str):
    """Register a compare action with an explicit source parameter."""
    value_kinds = ORDERED_KINDS if compare_operator.ordered else ALL_KINDS

    @action(name, PipelineKind.VALIDATE,
            SOURCE,
            ActionParameter("compare", "The compare value", value_kinds=value_kinds),
            COMPARE_DATE,
            description=description, categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE),
            issues=_compare_issues(compare_operator))
    def compare_action(context: ActionContext, source: Any, compare: Any, compare_date: Any = None) -> None:
        compare_values(context, source, compare, compare_operator, compare_date, VALIDATE_POLICY)

    compare_action.__name__ = name
    return compare_action


def _field_compare(name: str, compare_operator: CompareOperator, description: str,
                   to_reference: Callable[[str], str], category: str, with_date: bool):
    """Register a compare action on the case change of the current field."""
    value_kinds = DATE_KINDS if not with_date else (ORDERED_KINDS if compare_operator.ordered else ALL_KINDS)
    parameters = [ActionParameter("compare", "The compare value", value_kinds=value_kinds)]
    if with_date:
        parameters.append(COMPARE_DATE)

    @action(name, PipelineKind.VALIDATE, *parameters,
            description=description, categories=(CATEGORY_VALIDATE, category),
            issues=_compare_issues(compare_operator), field_scoped=True)
    def compare_action(context: ActionContext, compare: Any, compare_date: Any = None) -> None:
        compare_values(context, to_reference(context.case_field_name), compare,
                       compare_operator, compare_date, VALIDATE_POLICY)

    compare_action.__name__ = name
    return compare_action


def _field_between(name: str, description: str, to_reference: Callable[[str], str],
                   category: str, with_date: bool):
    """Register a range action on the case change of the current field."""
    value_kinds = ORDERED_KINDS if with_date else DATE_KINDS
    parameters = [
        ActionParameter("start", "The range start value", value_kinds=value_kinds),
        ActionParameter("end", "The range end value", value_kinds=value_kinds),
    ]
    if with_date:
        parameters.append(COMPARE_DATE)

    @action(name, PipelineKind.VALIDATE, *parameters,
            description=description, categories=(CATEGORY_VALIDATE, category),
            issues=("CompareValueLess", "CompareValueGreater"), field_scoped=True)
    def between_action(context: ActionContext, start: Any, end: Any, compare_date: Any = None) -> None:
        compare_between(context, to_reference(context.case_field_name), start, end, compare_date, VALIDATE_POLICY)

    between_action.__name__ = name
    return between_action


FIELD_COMPARE_VARIANTS = (
    ("Value", "case value", to_case_change_value_reference, CATEGORY_FIELD_VALUE, True),
    ("Start", "case value start", to_case_change_start_reference, CATEGORY_FIELD_START, False),
    ("End", "case value end", to_case_change_end_reference, CATEGORY_FIELD_END, False),
)

for _name, _operator, _phrase in COMPARE_OPERATIONS:
    _source_compare(_name, _operator, f"Validate for {_phrase} value")
    for _prefix, _subject, _to_reference, _category, _with_date in FIELD_COMPARE_VARIANTS:
        _field_compare(f"{_prefix}{_name}", _operator, f"Validate for {_phrase} {_subject}",
                       _to_reference, _category, _with_date)


@action("Between", PipelineKind.VALIDATE,
        SOURCE,
        ActionParameter("start", "The range start value", value_kinds=ORDERED_KINDS),
        ActionParameter("end", "The range end value", value_kinds=ORDERED_KINDS),
        COMPARE_DATE,
        categories=(CATEGORY_VALIDATE, CATEGORY_COMPARE),
        issues=("CompareValueLess", "CompareValueGreater"))
def between(context: ActionContext, source: Any, start: Any, end: Any, compare_date: Any = None) -> None:
    """Validate range value"""
    compare_between(context, source, start, end, compare_date, VALIDATE_POLICY)


for _prefix, _subject, _to_reference, _category, _with_date in FIELD_COMPARE_VARIANTS:
    _field_between(f"{_prefix}Between", f"Validate range {_subject}", _to_reference, _category, _with_date)


# =============================================================================
# TEXT
# =============================================================================

def _check_length(context: ActionContext, code: str, violated: Callable[[int, int], bool],
                  *limits: Any) -> None:
    """
    Check the text length of the current field against one or two limits.

    Unresolved limits skip the check. A missing value is an issue only for
    mandatory limits.
    """
    source_value = _field_value(context, ValueKind.STRING)
    limit_values = [ActionValue.resolve(context, limit, ValueKind.INTEGER) for limit in limits]
    if not all(value.is_fulfilled for value in limit_values):
        return
    if source_value.resolved_value is None:
        if limit_values[0].mandatory_field:
            context.add_coded_issue("MissingCaseValue", context.case_field_name)
        return
    resolved_limits = [value.resolved_value for value in limit_values]
    if violated(len(source_value.resolved_value), *resolved_limits):
        context.add_coded_issue(code, source_value, *limits)


def _length_parameter(name: str, description: str) -> ActionParameter:
    return ActionParameter(name, description, value_kinds=(ValueKind.INTEGER,))


@action("MinLength", PipelineKind.VALIDATE,
        _length_parameter("minLength", "The minimum string length"),
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "StringMinLength"), field_scoped=True)
def min_length(context: ActionContext, minimum: Any) -> None:
    """Validate for minimum string length"""
    _check_length(context, "StringMinLength", lambda length, limit: length < limit, minimum)


@action("MaxLength", PipelineKind.VALIDATE,
        _length_parameter("maxLength", "The maximum string length"),
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "StringMaxLength"), field_scoped=True)
def max_length(context: ActionContext, maximum: Any) -> None:
    """Validate for maximum string length"""
    _check_length(context, "StringMaxLength", lambda length, limit: length > limit, maximum)


@action("Length", PipelineKind.VALIDATE,
        _length_parameter("length", "The string length"),
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "StringLength"), field_scoped=True)
def length(context: ActionContext, expected: Any) -> None:
    """Validate for exact string length"""
    _check_length(context, "StringLength", lambda length, limit: length != limit, expected)


@action("LengthBetween", PipelineKind.VALIDATE,
        _length_parameter("minLength", "The minimum string length"),
        _length_parameter("maxLength", "The maximum string length"),
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "StringLengthBetween"), field_scoped=True)
def length_between(context: ActionContext, minimum: Any, maximum: Any) -> None:
    """Validate for string length range"""
    _check_length(context, "StringLengthBetween",
                  lambda length, low, high: length < low or length > high, minimum, maximum)


def _check_text(context: ActionContext, compare: Any, ignore_case: bool, expect_equal: bool) -> None:
    source_value = _field_value(context, ValueKind.STRING)
    compare_value = ActionValue.resolve(context, compare, ValueKind.STRING)
    if not compare_value.is_fulfilled:
        return
    if source_value.resolved_value is None:
        if compare_value.mandatory_field:
            context.add_coded_issue("MissingCaseValue", context.case_field_name)
        return

    text = source_value.resolved_value
    compare_text = compare_value.resolved_value
    if ignore_case:
        text, compare_text = text.casefold(), compare_text.casefold()
    if expect_equal and text != compare_text:
        context.add_coded_issue("StringNotEqual", source_value, compare_value)
    elif not expect_equal and text == compare_text:
        context.add_coded_issue("StringEqual", source_value, compare_value)


@action("EqualText", PipelineKind.VALIDATE,
        ActionParameter("compare", "The compare value", value_kinds=(ValueKind.STRING,)),
        IGNORE_CASE,
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "StringNotEqual"), field_scoped=True)
def equal_text(context: ActionContext, compare: Any, ignore_case: bool = False) -> None:
    """Validate for equal text"""
    _check_text(context, compare, ignore_case, expect_equal=True)


@action("NotEqualText", PipelineKind.VALIDATE,
        ActionParameter("compare", "The compare value", value_kinds=(ValueKind.STRING,)),
        IGNORE_CASE,
        categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_VALUE),
        issues=("MissingCaseValue", "StringEqual"), field_scoped=True)
def not_equal_text(context: ActionContext, compare: Any, ignore_case: bool = False) -> None:
    """Validate for different text"""
    _check_text(context, compare, ignore_case, expect_equal=False)


# =============================================================================
# PERIOD
# =============================================================================

@dataclass
class FieldPeriod:
    """Validity period of a referenced field; an open end is datetime.max."""
    start_value: ActionValue
    end_value: ActionValue

    @property
    def start(self) -> datetime:
        return self.start_value.resolved_value

    @property
    def end(self) -> datetime:
        return self.end_value.resolved_value or datetime.max

    def __str__(self) -> str:
        return period_string(self.start_value, self.end_value)


def period_string(start_value: ActionValue, end_value: ActionValue) -> str:
    """Period label "[start - end]", "[start - open]" without end."""
    if end_value.is_fulfilled:
        return f"[{start_value} - {end_value}]"
    return f"[{start_value} - open]"


def read_field_period(context: ActionContext, field_name: str, closed_period: bool = False,
                      require_end: bool = False) -> Optional[FieldPeriod]:
    """
    Read the period of a referenced field.

    Args:
        context: The action context, receives the issues.
        field_name: Field reference, e.g. "#Contract" or "@Contract".
        closed_period: An open period is an issue.
        require_end: An open period skips the check silently.

    Returns:
        The period, or None when the check cannot run.
    """
    start_value = ActionValue.resolve(context, to_start_reference(field_name), ValueKind.DATETIME)
    if not start_value.is_fulfilled:
        context.add_coded_issue("ComparePeriodWithoutStartDate", field_name, start_value)
        return None
    end_value = ActionValue.resolve(context, to_end_reference(field_name), ValueKind.DATETIME)
    if not end_value.is_fulfilled:
        if require_end:
            return None
        if closed_period:
            context.add_coded_issue("ComparePeriodOpenPeriod", field_name)
            return None
    return FieldPeriod(start_value, end_value)


def _moment_check(name: str, description: str, code: str, violated: Callable[[datetime, FieldPeriod], bool],
                  with_closed: bool):
    """Register a FieldPeriod* moment check and its Period* shortcut on the current field."""
    issues = ("ComparePeriodWithoutStartDate", "ComparePeriodInvalidTestDate", code)
    if with_closed:
        issues = issues + ("ComparePeriodOpenPeriod",)
    parameters = [MOMENT, CLOSED_PERIOD] if with_closed else [MOMENT]

    def check(context: ActionContext, field_name: str, moment: Any, closed_period: bool = False) -> None:
        period = read_field_period(context, field_name, closed_period, require_end=not with_closed)
        if period is None:
            return
        moment_value = ActionValue.resolve(context, moment, ValueKind.DATETIME)
        if not moment_value.is_fulfilled:
            context.add_coded_issue("ComparePeriodInvalidTestDate", field_name, moment)
            return
        if violated(moment_value.resolved_value, period):
            context.add_coded_issue(code, field_name, moment_value, period)

    @action(f"Field{name}", PipelineKind.VALIDATE, FIELD_NAME, *parameters,
            description=f"Validate for moment {description} field period",
            categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_PERIOD), issues=issues)
    def field_check(context: ActionContext, field_name: str, moment: Any, closed_period: bool = False) -> None:
        check(context, field_name, moment, closed_period)

    @action(name, PipelineKind.VALIDATE, *parameters,
            description=f"Validate for moment {description} period",
            categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_PERIOD), issues=issues, field_scoped=True)
    def current_check(context: ActionContext, moment: Any, closed_period: bool = False) -> None:
        check(context, to_case_change_reference(context.case_field_name), moment, closed_period)

    field_check.__name__ = f"Field{name}"
    current_check.__name__ = name
    return field_check, current_check


_moment_check("PeriodBefore", "before", "ComparePeriodNotBefore",
              lambda moment, period: moment >= period.start, with_closed=False)
_moment_check("PeriodNotBefore", "not before", "ComparePeriodBefore",
              lambda moment, period: moment < period.start, with_closed=False)
_moment_check("PeriodWithin", "within", "ComparePeriodNotWithin",
              lambda moment, period: moment < period.start or moment > period.end, with_closed=True)
_moment_check("PeriodNotWithin", "not within", "ComparePeriodWithin",
              lambda moment, period: period.start <= moment <= period.end, with_closed=True)
_moment_check("PeriodAfter", "after", "ComparePeriodNotAfter",
              lambda moment, period: moment <= period.end, with_closed=True)
_moment_check("PeriodNotAfter", "not after", "ComparePeriodAfter",
              lambda moment, period: moment > period.end, with_closed=True)


def _overlap_check(name: str, description: str, code: str, expect_overlap: bool):
    """Register a FieldPeriod*Overlap check and its Period* shortcut on the current field."""
    issues = ("ComparePeriodWithoutStartDate", "ComparePeriodOpenPeriod",
              "ComparePeriodInvalidPeriodStart", "ComparePeriodInvalidPeriodEnd", code)

    def check(context: ActionContext, field_name: str, period_start: Any, period_end: Any,
              closed_period: bool = False) -> None:
        period = read_field_period(context, field_name, closed_period)
        if period is None:
            return
        start_value = ActionValue.resolve(context, period_start, ValueKind.DATETIME)
        if not start_value.is_fulfilled:
            context.add_coded_issue("ComparePeriodInvalidPeriodStart", field_name, period_start)
            return
        end_value = ActionValue.resolve(context, period_end, ValueKind.DATETIME)
        if not end_value.is_fulfilled:
            context.add_coded_issue("ComparePeriodInvalidPeriodEnd", field_name, period_end)
            return

        overlapping = period.start < end_value.resolved_value and start_value.resolved_value < period.end
        if overlapping != expect_overlap:
            context.add_coded_issue(code, field_name, period_string(start_value, end_value), period)

    @action(f"Field{name}", PipelineKind.VALIDATE, FIELD_NAME, PERIOD_START, PERIOD_END, CLOSED_PERIOD,
            description=f"Validate for period {description} the field period",
            categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_PERIOD), issues=issues)
    def field_check(context: ActionContext, field_name: str, period_start: Any, period_end: Any,
                    closed_period: bool = False) -> None:
        check(context, field_name, period_start, period_end, closed_period)

    @action(name, PipelineKind.VALIDATE, PERIOD_START, PERIOD_END, CLOSED_PERIOD,
            description=f"Validate for period {description} the period",
            categories=(CATEGORY_VALIDATE, CATEGORY_FIELD_PERIOD), issues=issues, field_scoped=True)
    def current_check(context: ActionContext, period_start: Any, period_end: Any,
                      closed_period: bool = False) -> None:
        check(context, to_case_change_reference(context.case_field_name), period_start, period_end, closed_period)

    field_check.__name__ = f"Field{name}"
    current_check.__name__ = name
    return field_check, current_check


_overlap_check("PeriodOverlap", "overlapping", "ComparePeriodNotOverlap", expect_overlap=True)
_overlap_check("PeriodNotOverlap", "not overlapping", "ComparePeriodOverlap", expect_overlap=False)
