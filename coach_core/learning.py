"""Static reference cards shown next to the suggestions."""

from __future__ import annotations

import textwrap
from dataclasses import dataclass


@dataclass(frozen=True)
class LearningCard:
    title: str
    summary: str
    code_example: str | None = None
    tips: tuple[str, ...] = ()


LEARNING_CARDS: tuple[LearningCard, ...] = (
    LearningCard(
        title="Python Fundamentals",
        summary=(
            "Master the basics: variables, functions, and control structures form the "
            "foundation of all programming."
        ),
        code_example=textwrap.dedent(
            """
            # Variables store data
            message = "Hello, World!"

            # Functions perform actions
            def greet(name):
                return "Hello, " + name

            # Control structures make decisions
            if len(message) > 0:
                print(greet("Student"))
            """
        ).strip(),
    ),
    LearningCard(
        title="Debugging Best Practices",
        summary=(
            "Learn to read error messages, use print strategically, and break problems "
            "into smaller parts."
        ),
        tips=(
            "Read error messages carefully - they tell you exactly what's wrong",
            "Use print to check variable values",
            "Test small pieces of code one at a time",
            "Check for typos in variable and function names",
        ),
    ),
)
