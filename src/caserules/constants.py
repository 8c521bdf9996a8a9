"""
Shared constants across caserules modules.

This module is the single source of truth for:
- Reference markers and value source postfixes
- Issue codes and their message templates
- Field input attribute names
- Action namespace and category labels
"""

from datetime import timedelta

# =============================================================================
# REFERENCE MARKERS
# =============================================================================
# Prefix characters selecting the reference target

CASE_CHANGE_MARKER = "#"
CASE_VALUE_MARKER = "@"
OPTIONAL_FIELD_MARKER = "?"
METHOD_SEPARATOR = "."


# =============================================================================
# VALUE SOURCE POSTFIXES
# =============================================================================
# Postfixes selecting the part of a case value a reference reads

POSTFIX_VALUE = ".Value"
POSTFIX_START = ".Start"
POSTFIX_END = ".End"
POSTFIX_PERIOD = ".Period"
POSTFIX_FIELD_ATTRIBUTE = ".FieldAttribute"
POSTFIX_VALUE_ATTRIBUTE = ".ValueAttribute"


# =============================================================================
# ACTION EXPRESSIONS
# =============================================================================

DEFAULT_NAMESPACE = "System"
INPUT_NAMESPACE = "Input"
DISABLED_ACTION_MARKER = "'"
CONDITION_CONSEQUENT_MARKER = "?"
CONDITION_ALTERNATIVE_MARKER = ":"
CONDITION_INVERT_MARKER = "!"
CONDITION_ACTION_SEPARATOR = ";"


# =============================================================================
# ACTION CATEGORIES
# =============================================================================

CATEGORY_COMPARE = "Compare"
CATEGORY_VALIDATE = "Validate"
CATEGORY_FIELD = "Field"
CATEGORY_FIELD_VALUE = "FieldValue"
CATEGORY_FIELD_START = "FieldStart"
CATEGORY_FIELD_END = "FieldEnd"
CATEGORY_FIELD_PERIOD = "FieldPeriod"
CATEGORY_FIELD_INPUT = "FieldInput"
CATEGORY_RELATION_FIELD = "RelationField"


# =============================================================================
# ISSUE TEMPLATES
# =============================================================================
# Coded validation issues, positional placeholders {0}..{n}

ISSUE_TEMPLATES = {
    "MissingCaseValue": "Missing value {0}",
    "InvalidEmail": "{0} with invalid E-Mail {1}",
    "InvalidRegexMatch": "{0} with invalid value {1}",
    "UndefinedValue": "{0} should be not empty",
    "DefinedValue": "{0} should be empty",
    "CompareInvalidSource": "Invalid compare source {0}",
    "CompareValueNotTrue": "{0} is not true",
    "CompareValueNotFalse": "{0} is not false",
    "CompareInvalidSourceValue": "{0} invalid source value {1}",
    "CompareMissingSourceValue": "{0} missing source value {1}",
    "CompareInvalidCompareValue": "{0} invalid compare value {1}",
    "CompareValueNotEqual": "{0} is not equal {1}",
    "CompareValueEqual": "{0} is equal {1}",
    "CompareValueLessEqual": "{0} is less/equal than {1}",
    "CompareValueLess": "{0} is less than {1}",
    "CompareValueGreaterEqual": "{0} is greater/equal than {1}",
    "CompareValueGreater": "{0} is greater than {1}",
    "ComparePeriodWithoutStartDate": "{0} period without start {1}",
    "ComparePeriodInvalidTestDate": "{0} invalid test date {1}",
    "ComparePeriodOpenPeriod": "Value {0} with open period",
    "ComparePeriodBefore": "{0} {1} is before period {2}",
    "ComparePeriodNotBefore": "{0} {1} is not before period {2}",
    "ComparePeriodWithin": "{0} {1} is within {2}",
    "ComparePeriodNotWithin": "{0} {1} is not within {2}",
    "ComparePeriodAfter": "{0} {1} is after {2}",
    "ComparePeriodNotAfter": "{0} {1} is not after {2}",
    "ComparePeriodInvalidPeriodStart": "{0} invalid period start {1}",
    "ComparePeriodInvalidPeriodEnd": "{0} invalid period end {1}",
    "ComparePeriodOverlap": "{0} {1} is overlapping {2}",
    "ComparePeriodNotOverlap": "{0} {1} is not overlapping {2}",
    "StringMinLength": "{0} must be a at least {1} characters",
    "StringMaxLength": "{0} must be {1} characters or less",
    "StringLength": "{0} must be exactly {1} characters",
    "StringLengthBetween": "{0} must be at least {1} and at most {2} characters",
    "StringEqual": "{0} is equal {1}",
    "StringNotEqual": "{0} is not equal {1}",
}


# =============================================================================
# FIELD INPUT ATTRIBUTES
# =============================================================================
# Case field attribute names read by input front ends

INPUT_HIDDEN = "input.hidden"
INPUT_HIDDEN_DESCRIPTION = "input.hiddenDescription"
INPUT_START_READ_ONLY = "input.readOnlyStart"
INPUT_END_READ_ONLY = "input.readOnlyEnd"
INPUT_VALUE_READ_ONLY = "input.readOnly"
INPUT_VALUE_REQUIRED = "input.required"


# =============================================================================
# EVALUATION
# =============================================================================

# Case value lookups default to the current moment plus this offset
DEFAULT_VALUE_DATE_OFFSET = timedelta(minutes=1)
