from __future__ import annotations

from datetime import datetime, timezone
from collections.abc import Mapping
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_SUGGESTIONS = 4

SuggestionType = Literal["error-fix", "improvement", "learning"]
SuggestionMode = Literal["auto", "remote", "heuristic"]


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")


class BaseSchema(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()

    def to_dict(self) -> dict[str, object]:
        return self.model_dump()

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class ExecutionResult(BaseSchema):
    """Snapshot of one sandboxed run: captured streams and timing."""

    model_config = ConfigDict(frozen=True)

    output: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    execution_time_ms: int = Field(default=0, ge=0)
    pending_callbacks: int = Field(default=0, ge=0)

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class Suggestion(BaseSchema):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: SuggestionType
    title: str
    description: str
    code_example: str | None = Field(default=None, alias="codeExample")

    def to_wire(self) -> dict[str, object]:
        """Dump with the camelCase field names used on the wire."""
        return self.model_dump(by_alias=True, exclude_none=True)


class LLMProviderConfig(BaseSchema):
    provider_id: str
    provider_type: str
    base_url: str | None = None
    model_name: str
    api_key: str | None = None
    max_retries: int = 3
    timeout_seconds: int = 30
    temperature: float = 0.7
    max_tokens: int = 1000
    top_k: int = 40
    top_p: float = 0.95


class CoachConfig(BaseSchema):
    suggestion_mode: SuggestionMode = "auto"
    llm_provider: LLMProviderConfig | None = None
    log_level: str = "INFO"
    allowed_modules: list[str] | None = None
