"""
Action Expression Grammar.

Configured rule actions are plain strings attached to a case or case field.
This module turns them into structured expressions the dispatcher can bind.

Grammar:
    entry       := disabled | conditional | action
    disabled    := "'" anything
    conditional := ['!'] action ' ? ' branch ' : ' [branch]
    branch      := entry (';' ' ' entry)*
    action      := [namespace '.'] name ['(' params ')']
    params      := param (',' param)*        (commas inside nested parentheses are kept)

Examples:
    "CaseValueGreaterEqualThan(Level, 2)"
    "System.SetValue(100)"
    "'MinLimit(10)"                                   (disabled)
    "CaseValueEqual(Type, A) ? SetValue(1) : SetValue(2)"
    "!Defined ? SetValue(0); HideField(Extra) :"
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from caserules.constants import (
    CONDITION_ACTION_SEPARATOR,
    CONDITION_ALTERNATIVE_MARKER,
    CONDITION_CONSEQUENT_MARKER,
    CONDITION_INVERT_MARKER,
    DISABLED_ACTION_MARKER,
)


class ExpressionSyntaxError(ValueError):
    """Error parsing an action expression."""
    pass


@dataclass(frozen=True)
class ActionExpression:
    """A single action call: [namespace.]name(parameters)."""
    expression: str
    name: str
    namespace: Optional[str] = None
    parameters: Tuple[Optional[str], ...] = ()

    def __str__(self) -> str:
        return self.expression


@dataclass
class ConditionNode:
    """
    Node of a conditional action tree.

    A node without branches is a plain action. A condition node runs its
    action as a test; the consequent branch follows when the test raised no
    issues (inverted with a leading '!'), the alternative branch otherwise.
    """
    expression: str
    action: ActionExpression
    invert: bool = False
    consequent: List["ConditionNode"] = field(default_factory=list)
    alternative: List["ConditionNode"] = field(default_factory=list)
    is_condition: bool = False

    def actions(self) -> List[ActionExpression]:
        """All action calls of the tree, depth first."""
        result = [self.action]
        for node in self.consequent + self.alternative:
            result.extend(node.actions())
        return result


# =============================================================================
# PARAMETER SPLITTING
# =============================================================================

def split_parameters(text: Optional[str]) -> List[str]:
    """
    Split a parameter list on top-level commas.

    Commas inside nested parentheses belong to the nested call:
    "@A.Value.Limit(1, 5), 3" -> ["@A.Value.Limit(1, 5)", "3"]
    """
    if text is None or not text.strip():
        return []
    parts = []
    current = []
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return parts


def parse_call(text: str) -> Tuple[str, List[str]]:
    """
    Parse a call expression "Name(p1, p2)" into its name and parameters.

    Raises:
        ExpressionSyntaxError: On unbalanced parentheses or a missing name.
    """
    text = text.strip()
    open_index = text.find("(")
    close_index = text.rfind(")")
    if open_index < 0 and close_index < 0:
        if not text:
            raise ExpressionSyntaxError("Empty call expression")
        return text, []
    if open_index < 0 or close_index < open_index or not _balanced(text):
        raise ExpressionSyntaxError(f"Invalid call expression: {text}")
    if text[close_index + 1:].strip():
        raise ExpressionSyntaxError(f"Unexpected text after call: {text}")
    name = text[:open_index].strip()
    if not name:
        raise ExpressionSyntaxError(f"Missing name in call expression: {text}")
    return name, split_parameters(text[open_index + 1:close_index])


def _balanced(text: str) -> bool:
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


# =============================================================================
# ACTION PARSER
# =============================================================================

def is_disabled(expression: Optional[str]) -> bool:
    """Disabled actions start with a single quote."""
    return bool(expression) and expression.lstrip().startswith(DISABLED_ACTION_MARKER)


def parse_action(expression: str) -> ActionExpression:
    """
    Parse one action call.

    The namespace is everything before the last dot of the name part, so a
    dotted parameter like "@Wage.Start" never splits the name.
    """
    text = expression.strip()
    if not text:
        raise ExpressionSyntaxError("Empty action expression")
    qualified, parameters = parse_call(text)

    namespace = None
    name = qualified
    namespace_index = qualified.rfind(".")
    if namespace_index > 0:
        namespace = qualified[:namespace_index].strip()
        name = qualified[namespace_index + 1:].strip()
    if not name:
        raise ExpressionSyntaxError(f"Missing action name: {expression}")

    return ActionExpression(
        expression=text,
        name=name,
        namespace=namespace,
        parameters=tuple(p if p else None for p in parameters),
    )


def parse_condition(expression: str) -> ConditionNode:
    """
    Parse an action entry, conditional or plain.

    Raises:
        ExpressionSyntaxError: On malformed condition markers.
    """
    text = expression.strip()
    consequent_token = f" {CONDITION_CONSEQUENT_MARKER} "
    alternative_token = f" {CONDITION_ALTERNATIVE_MARKER} "
    consequent_index = text.find(consequent_token)
    alternative_index = text.find(alternative_token)
    if alternative_index < 0 and text.endswith(f" {CONDITION_ALTERNATIVE_MARKER}"):
        alternative_index = len(text) - 1

    if consequent_index < 0 and alternative_index < 0:
        return ConditionNode(expression=text, action=parse_action(text))
    if consequent_index < 0 or alternative_index < 0 or alternative_index < consequent_index:
        raise ExpressionSyntaxError(f"Invalid condition expression: {text}")

    condition = text[:consequent_index].strip()
    invert = condition.startswith(CONDITION_INVERT_MARKER)
    if invert:
        condition = condition[len(CONDITION_INVERT_MARKER):].strip()

    remainder = text[consequent_index + len(consequent_token):].strip()
    split_index = _find_alternative(remainder)
    if split_index < 0:
        raise ExpressionSyntaxError(f"Missing condition alternative marker in: {text}")

    consequent = [parse_condition(part) for part in _branch_entries(remainder[:split_index])]
    alternative = [parse_condition(part) for part in _branch_entries(remainder[split_index + 1:])]
    if not consequent and not alternative:
        raise ExpressionSyntaxError(f"Missing condition consequent or alternative: {text}")

    return ConditionNode(
        expression=text,
        action=parse_action(condition),
        invert=invert,
        consequent=consequent,
        alternative=alternative,
        is_condition=True,
    )


def _find_alternative(text: str) -> int:
    """Index of the ':' closing the current branch, skipping nested conditions."""
    nested = 0
    for index, char in enumerate(text):
        if char == CONDITION_CONSEQUENT_MARKER:
            if 0 < index < len(text) - 1 and text[index - 1] == " " and text[index + 1] == " ":
                nested += 1
        elif char == CONDITION_ALTERNATIVE_MARKER:
            if (index == 0 or text[index - 1] == " ") and (index == len(text) - 1 or text[index + 1] == " "):
                if nested == 0:
                    return index
                nested -= 1
    return -1


def _branch_entries(text: str) -> List[str]:
    """Split a branch on ';' separators that follow a name or ')' and precede a blank."""
    text = text.strip()
    if not text:
        return []
    entries = []
    start = 0
    for index in range(1, len(text) - 1):
        if text[index] != CONDITION_ACTION_SEPARATOR:
            continue
        left = text[index - 1]
        right = text[index + 1]
        if (left.isalpha() or left == ")") and right == " ":
            entries.append(text[start:index].strip())
            start = index + 1
    entries.append(text[start:].strip())
    return [entry for entry in entries if entry]
