"""Suggestions from a remote LLM, with fixed fallbacks when it can't help."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from typing import cast

from llm.base import BaseLLMProvider
from llm.prompts import MentorPromptTemplate

from .schemas import MAX_SUGGESTIONS, Suggestion

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)
_SUGGESTION_TYPES = {"error-fix", "improvement", "learning"}

ASSISTANT_OFFLINE = Suggestion(
    type="learning",
    title="AI Assistant Offline",
    description=(
        "Don't worry! Use this as an opportunity to debug on your own. Look at error "
        "messages carefully and try to understand what they're telling you."
    ),
    code_example="# Debugging tip:\nprint('Check your variables:', your_variable)",
)

KEEP_EXPLORING = Suggestion(
    type="learning",
    title="Keep Exploring!",
    description=(
        "The AI is here to help guide your learning journey. Try running your code "
        "and see what happens!"
    ),
    code_example="# Remember: learning comes from trying things out!\nprint('Keep coding!')",
)


class MalformedReplyError(ValueError):
    """The reply contained a bracketed span that is not a JSON array."""


def extract_suggestions(text: str) -> list[Suggestion] | None:
    """
    Parse the first bracketed span of ``text`` as a suggestion list.

    Returns None when the text has no bracketed span at all. Raises
    MalformedReplyError when the span is not valid JSON. An empty array
    comes back as an empty list; ``RemoteSuggestionClient.fetch`` then
    answers with KEEP_EXPLORING instead of publishing nothing, so the
    learner always sees at least one suggestion.
    """
    match = _JSON_ARRAY.search(text)
    if match is None:
        return None
    try:
        loaded = cast(object, json.loads(match.group(0)))
    except json.JSONDecodeError as exc:
        raise MalformedReplyError(f"Invalid JSON array in reply: {exc}") from exc
    if not isinstance(loaded, list):
        raise MalformedReplyError("Reply array is not a JSON list")

    suggestions: list[Suggestion] = []
    for entry in cast(list[object], loaded):
        suggestion = _normalize_entry(entry)
        if suggestion is not None:
            suggestions.append(suggestion)
    return suggestions[:MAX_SUGGESTIONS]


def _normalize_entry(entry: object) -> Suggestion | None:
    if not isinstance(entry, Mapping):
        return None
    data = cast(Mapping[str, object], entry)
    title = data.get("title")
    description = data.get("description")
    if not isinstance(title, str) or not title.strip():
        return None
    if not isinstance(description, str) or not description.strip():
        return None
    kind = data.get("type")
    example = data.get("codeExample", data.get("code_example"))
    return Suggestion(
        type=kind if kind in _SUGGESTION_TYPES else "learning",
        title=title.strip(),
        description=description.strip(),
        code_example=str(example) if example else None,
    )


class RemoteSuggestionClient:
    """Ask an LLM provider for mentor-style suggestions about a script."""

    def __init__(
        self,
        provider: BaseLLMProvider,
        template: MentorPromptTemplate | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> None:
        self.provider = provider
        self.template = template or MentorPromptTemplate()
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def fetch(self, script_text: str, errors: Sequence[str]) -> list[Suggestion]:
        """Never empty: faults give ASSISTANT_OFFLINE, replies without usable entries KEEP_EXPLORING."""
        prompt = self.template.build(script_text, errors)
        try:
            response = await self.provider.generate(prompt, self.temperature, self.max_tokens)
            suggestions = extract_suggestions(response.text)
        except Exception as exc:  # noqa: BLE001 - every remote fault maps to a fallback
            logger.warning("AI feedback error from %s: %s", self.provider.provider_id, exc)
            return [ASSISTANT_OFFLINE]

        if not suggestions:
            logger.info("No usable suggestion array in reply from %s", self.provider.provider_id)
            return [KEEP_EXPLORING]
        return suggestions


async def fetch_remote(
    provider: BaseLLMProvider,
    script_text: str,
    errors: Sequence[str],
) -> list[Suggestion]:
    return await RemoteSuggestionClient(provider).fetch(script_text, errors)
