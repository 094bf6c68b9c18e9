"""Prompt templates for the coding mentor."""

from __future__ import annotations

import textwrap
from collections.abc import Sequence


def _mentor_context() -> str:
    return textwrap.dedent(
        """
        You are an encouraging Python coding mentor. Your goal is to guide students
        toward solutions without giving them complete answers.

        IMPORTANT GUIDELINES:
        - NEVER provide complete working code solutions
        - Instead, give hints, point out where to look, and suggest what concepts to explore
        - Ask leading questions that help students think through problems
        - Encourage experimentation and learning from mistakes
        - Focus on understanding WHY something works, not just HOW
        - Celebrate small victories and progress

        When analyzing code and errors:
        1. Point out WHAT TYPE of error it is and WHERE to look
        2. Suggest WHICH concepts they should review or practice
        3. Give small hints about the RIGHT DIRECTION to explore
        4. Encourage them to try different approaches
        """
    ).strip()


def _response_format() -> str:
    return textwrap.dedent(
        """
        Format your response as a JSON array of at most 4 suggestions with this structure:
        [{"type": "error-fix" | "improvement" | "learning", "title": "Clear title", "description": "Encouraging guidance without full solution", "codeExample": "Small hint or partial example (not complete solution)"}]

        Keep descriptions conversational and supportive. Use "you can try", "consider exploring", "what if you", etc.
        """
    ).strip()


def format_errors(errors: Sequence[str]) -> str:
    if not errors:
        return "No errors detected."
    return "Errors encountered:\n" + "\n".join(errors)


class MentorPromptTemplate:
    def build(self, script_text: str, errors: Sequence[str]) -> str:
        prompt = "\n\n".join(
            [
                _mentor_context(),
                _response_format(),
                "Analyze this Python code and any errors. Provide encouraging guidance "
                "that helps the student learn, not complete solutions.",
                "Code:\n```python\n" + script_text.rstrip() + "\n```",
                format_errors(errors),
                "Remember: Guide them toward solutions with hints and questions, don't solve it for them!",
            ]
        )
        return prompt
