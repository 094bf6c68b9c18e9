from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from coach_core.schemas import CoachConfig, ExecutionResult, LLMProviderConfig, Suggestion


def test_execution_result_serialize_roundtrip() -> None:
    result = ExecutionResult(
        output=("2",),
        errors=("NameError: name 'x' is not defined",),
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
        execution_time_ms=3,
    )

    restored = ExecutionResult.from_json(result.to_json())

    assert restored == result
    assert restored.succeeded is False


def test_execution_result_is_immutable() -> None:
    result = ExecutionResult(output=("a",))
    with pytest.raises(ValidationError):
        result.output = ("b",)  # type: ignore[misc]


def test_execution_result_timestamp_is_utc() -> None:
    naive = ExecutionResult(timestamp=datetime(2026, 1, 1, 12, 0))
    shifted = ExecutionResult(timestamp=datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2))))

    assert naive.timestamp.tzinfo is not None
    assert shifted.timestamp == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_execution_time_cannot_be_negative() -> None:
    with pytest.raises(ValidationError):
        _ = ExecutionResult(execution_time_ms=-1)


def test_suggestion_accepts_wire_and_python_names() -> None:
    wire = Suggestion.from_dict(
        {"type": "learning", "title": "T", "description": "D", "codeExample": "x = ..."}
    )
    python = Suggestion(type="learning", title="T", description="D", code_example="x = ...")

    assert wire == python
    assert wire.to_wire() == {
        "type": "learning",
        "title": "T",
        "description": "D",
        "codeExample": "x = ...",
    }


def test_suggestion_wire_form_omits_missing_example() -> None:
    suggestion = Suggestion(type="improvement", title="T", description="D")
    assert "codeExample" not in suggestion.to_wire()


def test_suggestion_type_is_closed() -> None:
    with pytest.raises(ValidationError):
        _ = Suggestion(type="warning", title="T", description="D")  # type: ignore[arg-type]


def test_coach_config_defaults() -> None:
    config = CoachConfig()
    assert config.suggestion_mode == "auto"
    assert config.llm_provider is None


def test_coach_config_rejects_unknown_mode() -> None:
    with pytest.raises(ValidationError):
        _ = CoachConfig.from_dict({"suggestion_mode": "both"})


def test_provider_config_generation_defaults() -> None:
    config = LLMProviderConfig(provider_id="p", provider_type="gemini", model_name="m")
    assert config.temperature == 0.7
    assert config.max_tokens == 1000
    assert config.top_k == 40
    assert config.top_p == 0.95
