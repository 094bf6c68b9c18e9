import asyncio
import json

import httpx
import pytest

from coach_core.remote import (
    ASSISTANT_OFFLINE,
    KEEP_EXPLORING,
    MalformedReplyError,
    RemoteSuggestionClient,
    extract_suggestions,
    fetch_remote,
)
from coach_core.schemas import Suggestion
from llm.base import ProviderError
from llm.providers import FakeProvider, GeminiProvider


def _entry(index: int, kind: str = "learning") -> dict[str, str]:
    return {"type": kind, "title": f"T{index}", "description": f"D{index}"}


def _fetch(reply, script: str = "print(x)", errors=None) -> list[Suggestion]:
    provider = FakeProvider(provider_id="fake", replies=[reply])
    client = RemoteSuggestionClient(provider)
    return asyncio.run(client.fetch(script, errors or []))


def test_array_is_extracted_from_surrounding_commentary() -> None:
    reply = (
        "Here are some ideas!\n"
        '[{"type": "error-fix", "title": "Look at line 1", "description": "What is x?", '
        '"codeExample": "x = ..."}]\n'
        "Good luck!"
    )
    suggestions = _fetch(reply)

    assert suggestions == [
        Suggestion(type="error-fix", title="Look at line 1", description="What is x?", code_example="x = ...")
    ]


def test_list_is_truncated_to_four_in_order() -> None:
    suggestions = _fetch(json.dumps([_entry(i) for i in range(6)]))
    assert [s.title for s in suggestions] == ["T0", "T1", "T2", "T3"]


def test_malformed_json_yields_assistant_offline() -> None:
    suggestions = _fetch('Sure! [{"type": "learning", "title": }]')
    assert suggestions == [ASSISTANT_OFFLINE]


def test_missing_array_yields_keep_exploring() -> None:
    suggestions = _fetch("Your code looks great, keep going!")
    assert suggestions == [KEEP_EXPLORING]
    assert suggestions != [ASSISTANT_OFFLINE]


def test_array_without_usable_entries_yields_keep_exploring() -> None:
    suggestions = _fetch('[1, "two", {"type": "learning"}, {"title": "", "description": "d"}]')
    assert suggestions == [KEEP_EXPLORING]


@pytest.mark.parametrize(
    "failure",
    [
        ProviderError("Gemini API error 500", status_code=500),
        httpx.ConnectError("connection refused"),
        TimeoutError("timed out"),
        RuntimeError("unexpected"),
    ],
)
def test_provider_failures_yield_assistant_offline(failure: Exception) -> None:
    assert _fetch(failure) == [ASSISTANT_OFFLINE]


def test_failure_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="coach_core.remote"):
        _ = _fetch(ProviderError("boom"))
    assert "boom" in caplog.text


def test_entries_are_normalized() -> None:
    reply = json.dumps(
        [
            {"type": "hint", "title": " Loops ", "description": " Try a for loop. "},
            {"type": "improvement", "title": "Names", "description": "Be clear.", "code_example": "total = ..."},
            "stray text",
        ]
    )
    suggestions = _fetch(reply)

    assert suggestions == [
        Suggestion(type="learning", title="Loops", description="Try a for loop."),
        Suggestion(type="improvement", title="Names", description="Be clear.", code_example="total = ..."),
    ]


def test_prompt_carries_script_and_errors() -> None:
    provider = FakeProvider(provider_id="fake")
    client = RemoteSuggestionClient(provider, temperature=0.2, max_tokens=50)
    _ = asyncio.run(client.fetch("foo()", ["NameError: name 'foo' is not defined", "second"]))

    assert provider.call_count == 1
    assert "foo()" in provider.prompts[0]
    assert "NameError: name 'foo' is not defined\nsecond" in provider.prompts[0]


def test_cancellation_propagates() -> None:
    provider = FakeProvider(provider_id="fake", replies=[asyncio.CancelledError()])
    client = RemoteSuggestionClient(provider)

    async def scenario() -> None:
        with pytest.raises(asyncio.CancelledError):
            await client.fetch("x", [])

    asyncio.run(scenario())


def test_fetch_remote_against_failing_gemini_endpoint() -> None:
    provider = GeminiProvider(
        provider_id="gemini",
        api_key="k",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="oops")),
    )
    suggestions = asyncio.run(fetch_remote(provider, "print(1)", []))
    assert suggestions == [ASSISTANT_OFFLINE]


def test_fetch_remote_against_gemini_without_text_field() -> None:
    provider = GeminiProvider(
        provider_id="gemini",
        api_key="k",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"candidates": [{"content": {"parts": [{}]}}]})
        ),
    )
    suggestions = asyncio.run(fetch_remote(provider, "print(1)", []))
    assert suggestions == [ASSISTANT_OFFLINE]


def test_extract_suggestions_distinguishes_failure_classes() -> None:
    assert extract_suggestions("no brackets here") is None
    with pytest.raises(MalformedReplyError):
        _ = extract_suggestions("[not json]")
    assert extract_suggestions("[]") == []


def test_empty_array_reply_still_yields_one_suggestion() -> None:
    assert extract_suggestions("Nothing to add: []") == []
    assert _fetch("Nothing to add: []") == [KEEP_EXPLORING]
