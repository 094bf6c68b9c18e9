"""Rule-table suggestions computed locally from script text and errors."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .schemas import MAX_SUGGESTIONS, Suggestion

UNDECLARED_NAME_MARKERS = ("NameError", "UnboundLocalError", "is not defined")
SYNTAX_MARKERS = ("SyntaxError", "IndentationError", "TabError")

_GLOBAL_STATEMENT = re.compile(r"^\s*global\s+[A-Za-z_]", re.MULTILINE)
_DEF_STATEMENT = re.compile(r"^\s*(?:async\s+)?def\s+[A-Za-z_]\w*\s*\(", re.MULTILINE)
_LAMBDA = re.compile(r"\blambda\b")


@dataclass(frozen=True)
class Rule:
    """A predicate paired with the suggestion it contributes.

    Per-error rules are checked against each error entry on its own and
    contribute once per matching entry; other rules contribute at most once.
    """

    name: str
    predicate: Callable[[str, Sequence[str]], bool]
    template: Suggestion
    per_error: bool = False

    def apply(self, script_text: str, errors: Sequence[str]) -> list[Suggestion]:
        if self.per_error:
            return [self.template for entry in errors if self.predicate(script_text, [entry])]
        return [self.template] if self.predicate(script_text, errors) else []


def _errors_contain(markers: Sequence[str]) -> Callable[[str, Sequence[str]], bool]:
    def predicate(_script_text: str, errors: Sequence[str]) -> bool:
        return any(marker in entry for entry in errors for marker in markers)

    return predicate


def _uses_global(script_text: str, _errors: Sequence[str]) -> bool:
    return _GLOBAL_STATEMENT.search(script_text) is not None


def _def_without_lambda(script_text: str, _errors: Sequence[str]) -> bool:
    return _DEF_STATEMENT.search(script_text) is not None and _LAMBDA.search(script_text) is None


RULES: tuple[Rule, ...] = (
    Rule(
        name="undeclared-name",
        predicate=_errors_contain(UNDECLARED_NAME_MARKERS),
        per_error=True,
        template=Suggestion(
            type="error-fix",
            title="Define Names Before Using Them",
            description=(
                "Python can't find one of the names you used. Check the spelling, and make "
                "sure the variable or function is assigned or defined above the line that "
                "uses it. Which line does the error point to?"
            ),
            code_example="# Where is this name first given a value?\nresult = ...\nprint(result)",
        ),
    ),
    Rule(
        name="malformed-syntax",
        predicate=_errors_contain(SYNTAX_MARKERS),
        per_error=True,
        template=Suggestion(
            type="error-fix",
            title="Check Your Syntax",
            description=(
                "Something in the code's structure doesn't parse. Look for unmatched "
                "brackets or quotes, a missing colon after if/for/def, inconsistent "
                "indentation, and remember that names are case-sensitive."
            ),
            code_example="if condition:   # colon here?\n    ...          # indented block?",
        ),
    ),
    Rule(
        name="global-binding",
        predicate=_uses_global,
        template=Suggestion(
            type="improvement",
            title="Prefer Local Names Over global",
            description=(
                "A global statement lets any function change a shared variable, which "
                "makes bugs harder to track down. Consider passing values in as "
                "parameters and returning the new value instead."
            ),
            code_example="def update(count):\n    # return the new value instead of changing a global\n    ...",
        ),
    ),
    Rule(
        name="lambda-intro",
        predicate=_def_without_lambda,
        template=Suggestion(
            type="learning",
            title="Explore Lambda Expressions",
            description=(
                "Nice work defining functions! For tiny one-expression functions, such as "
                "a sort key, Python also has lambda expressions. Where might one fit in "
                "your code?"
            ),
            code_example="key=lambda item: ...",
        ),
    ),
)

FALLBACK_SUGGESTION = Suggestion(
    type="learning",
    title="Keep Building Good Habits",
    description=(
        "Take a moment to look at how your code is organized. Could it be easier "
        "to read with descriptive variable names, small functions that do one thing, and a "
        "comment where the intent isn't obvious?"
    ),
    code_example="# What would a clearer name for this value be?\ntotal_price = ...",
)


class HeuristicAnalyzer:
    """Suggestion source backed by the rule table."""

    def __init__(self, rules: Sequence[Rule] = RULES) -> None:
        self.rules = tuple(rules)

    def analyze(self, script_text: str, errors: Sequence[str]) -> list[Suggestion]:
        """Apply every rule in order; fall back to a generic tip when none match."""
        suggestions: list[Suggestion] = []
        for rule in self.rules:
            suggestions.extend(rule.apply(script_text, errors))
        if not suggestions:
            suggestions.append(FALLBACK_SUGGESTION)
        return suggestions[:MAX_SUGGESTIONS]


_default_analyzer = HeuristicAnalyzer()


def analyze(script_text: str, errors: Sequence[str]) -> list[Suggestion]:
    return _default_analyzer.analyze(script_text, errors)
