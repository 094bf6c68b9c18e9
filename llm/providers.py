"""LLM provider implementations."""

from __future__ import annotations

import asyncio
import importlib
import os
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Protocol, cast

import httpx

from coach_core.schemas import LLMProviderConfig

from .base import BaseLLMProvider, LLMResponse, ProviderError
from .retry import RetryPolicy

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class _ChatCompletions(Protocol):
    async def create(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> object: ...


class _Chat(Protocol):
    completions: _ChatCompletions


class _OpenAIClient(Protocol):
    chat: _Chat


def _load_openai_client(
    api_key: str | None,
    base_url: str | None,
    timeout_seconds: int,
) -> _OpenAIClient:
    try:
        module = importlib.import_module("openai")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency at runtime
        raise ImportError("openai is required to use OpenAIProvider") from exc
    openai_client = getattr(module, "AsyncOpenAI", None)
    if openai_client is None:
        raise ImportError("openai.AsyncOpenAI client is unavailable")
    return cast(
        _OpenAIClient,
        openai_client(api_key=api_key, base_url=base_url, timeout=timeout_seconds),
    )


def _extract_usage(raw_usage: object) -> dict[str, int]:
    if raw_usage is None:
        return {}
    model_dump = getattr(raw_usage, "model_dump", None)
    if callable(model_dump):
        raw_usage = model_dump()
    if isinstance(raw_usage, Mapping):
        typed_usage = cast(Mapping[str, object], raw_usage)
        usage: dict[str, int] = {}
        for key, value in typed_usage.items():
            if isinstance(value, bool):
                usage[key] = int(value)
            elif isinstance(value, (int, float)):
                usage[key] = int(value)
        return usage
    return {}


def _extract_chat_text(response: object) -> str | None:
    if response is None:
        return None
    choices = cast(Sequence[object] | None, getattr(response, "choices", None))
    if not choices:
        return None
    choice = choices[0]
    message = cast(object, getattr(choice, "message", None))
    content = cast(object | None, getattr(message, "content", None)) if message is not None else None
    if content is not None:
        return str(content)
    return None


def _extract_gemini_text(data: object) -> str | None:
    """Read ``candidates[0].content.parts[0].text`` without assuming any level exists."""
    if not isinstance(data, Mapping):
        return None
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = candidates[0].get("content") if isinstance(candidates[0], Mapping) else None
    parts = content.get("parts") if isinstance(content, Mapping) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], Mapping):
        return None
    text = parts[0].get("text")
    return str(text) if text else None


def _gemini_usage(data: Mapping[str, object]) -> dict[str, int]:
    metadata = data.get("usageMetadata")
    if not isinstance(metadata, Mapping):
        return {}
    return _extract_usage(
        {
            "prompt_tokens": metadata.get("promptTokenCount", 0),
            "completion_tokens": metadata.get("candidatesTokenCount", 0),
            "total_tokens": metadata.get("totalTokenCount", 0),
        }
    )


class GeminiProvider(BaseLLMProvider):
    """Google Generative Language ``generateContent`` over plain HTTP."""

    def __init__(
        self,
        provider_id: str,
        model_name: str = "gemini-2.0-flash",
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int = 30,
        top_k: int = 40,
        top_p: float = 0.95,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(provider_id=provider_id, model_name=model_name)
        self._api_key = api_key or os.getenv("GEMINI_API_KEY")
        self._base_url = (base_url or GEMINI_BASE_URL).rstrip("/")
        self._timeout_seconds = timeout_seconds
        self.top_k = top_k
        self.top_p = top_p
        self._retry_policy = retry_policy
        self._transport = transport

    async def _post(self, prompt: str, temperature: float, max_tokens: int) -> dict[str, object]:
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": self.top_k,
                "topP": self.top_p,
                "maxOutputTokens": max_tokens,
            },
        }
        async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
            response = await client.post(
                f"{self._base_url}/models/{self.model_name}:generateContent",
                params={"key": self._api_key or ""},
                headers={"Content-Type": "application/json"},
                json=payload,
            )
        if response.status_code != 200:
            raise ProviderError(
                f"Gemini API error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        data = response.json()
        if not isinstance(data, dict):
            raise ProviderError("Gemini API returned a non-object body")
        return cast(dict[str, object], data)

    async def generate(  # pyright: ignore[reportImplicitOverride]
        self, prompt: str, temperature: float, max_tokens: int
    ) -> LLMResponse:
        async def _call() -> dict[str, object]:
            return await self._post(prompt, temperature, max_tokens)

        start = time.perf_counter()
        try:
            if self._retry_policy is None:
                data = await _call()
            else:
                data = await self._retry_policy.execute(_call)
            text = _extract_gemini_text(data)
            if text is None:
                raise ProviderError("No response text from Gemini")
        except Exception:
            self.record_error()
            raise
        latency_ms = (time.perf_counter() - start) * 1000
        usage = _gemini_usage(data)
        self.record_call(latency_ms, usage)
        return LLMResponse(
            text=text,
            usage=usage,
            latency_ms=latency_ms,
            model_id=str(data.get("modelVersion") or self.model_name),
        )

    def get_provider_info(self) -> dict[str, object]:  # pyright: ignore[reportImplicitOverride]
        return {
            "provider_id": self.provider_id,
            "provider_type": "gemini",
            "model_name": self.model_name,
            "base_url": self._base_url,
            "timeout_seconds": self._timeout_seconds,
        }


class OpenAIProvider(BaseLLMProvider):
    """OpenAI-compatible provider (OpenAI, DeepSeek, etc.)."""

    provider_type: str
    _client: _OpenAIClient
    _base_url: str | None
    _timeout_seconds: int
    _retry_policy: RetryPolicy | None

    def __init__(
        self,
        provider_id: str,
        model_name: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int = 30,
        retry_policy: RetryPolicy | None = None,
        provider_type: str = "openai",
    ) -> None:
        super().__init__(provider_id=provider_id, model_name=model_name)
        self.provider_type = provider_type
        if api_key:
            api_key_value = api_key
        elif provider_type == "deepseek":
            api_key_value = os.getenv("DEEPSEEK_API_KEY") or os.getenv("OPENAI_API_KEY")
        else:
            api_key_value = os.getenv("OPENAI_API_KEY")
        self._client = _load_openai_client(api_key_value, base_url, timeout_seconds)
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._retry_policy = retry_policy

    async def generate(  # pyright: ignore[reportImplicitOverride]
        self, prompt: str, temperature: float, max_tokens: int
    ) -> LLMResponse:
        async def _call() -> object:
            return await self._client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )

        start = time.perf_counter()
        try:
            if self._retry_policy is None:
                response = await _call()
            else:
                response = await self._retry_policy.execute(_call)
            text = _extract_chat_text(response)
            if text is None:
                raise ProviderError("No message content in chat completion")
        except Exception:
            self.record_error()
            raise
        latency_ms = (time.perf_counter() - start) * 1000

        usage = _extract_usage(getattr(response, "usage", None))
        self.record_call(latency_ms, usage)
        model_id = str(getattr(response, "model", None) or self.model_name)
        return LLMResponse(
            text=text,
            usage=usage,
            latency_ms=latency_ms,
            model_id=model_id,
        )

    def get_provider_info(self) -> dict[str, object]:  # pyright: ignore[reportImplicitOverride]
        return {
            "provider_id": self.provider_id,
            "provider_type": self.provider_type,
            "model_name": self.model_name,
            "base_url": self._base_url,
            "timeout_seconds": self._timeout_seconds,
        }


Reply = str | BaseException | Callable[[str], Awaitable[str]]


class FakeProvider(BaseLLMProvider):
    """Scripted provider for offline runs and tests.

    Replies are consumed in order; the last one repeats. A reply may be text,
    an exception to raise, or a coroutine function receiving the prompt.
    """

    DEFAULT_REPLY = (
        '[{"type": "learning", "title": "Try It Out", '
        '"description": "What happens if you print intermediate values?", '
        '"codeExample": "print(value)"}]'
    )

    call_count: int

    def __init__(
        self,
        provider_id: str,
        model_name: str = "fake-model",
        replies: Sequence[Reply] | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        super().__init__(provider_id=provider_id, model_name=model_name)
        self.call_count = 0
        self.prompts: list[str] = []
        self._replies: list[Reply] = list(replies or [self.DEFAULT_REPLY])
        self._delay_seconds = delay_seconds

    async def generate(  # pyright: ignore[reportImplicitOverride]
        self, prompt: str, temperature: float, max_tokens: int
    ) -> LLMResponse:
        index = min(self.call_count, len(self._replies) - 1)
        self.call_count += 1
        self.prompts.append(prompt)
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)

        reply = self._replies[index]
        if isinstance(reply, BaseException):
            self.record_error()
            raise reply
        text = await reply(prompt) if callable(reply) else reply

        usage = {
            "prompt_tokens": len(prompt.split()),
            "completion_tokens": len(text.split()),
            "total_tokens": len(prompt.split()) + len(text.split()),
        }
        self.record_call(0.0, usage)
        return LLMResponse(text=text, usage=usage, latency_ms=0.0, model_id=self.model_name)

    def get_provider_info(self) -> dict[str, object]:  # pyright: ignore[reportImplicitOverride]
        return {
            "provider_id": self.provider_id,
            "provider_type": "fake",
            "model_name": self.model_name,
        }


def create_provider(
    config: LLMProviderConfig,
    retry_policy: RetryPolicy | None = None,
) -> BaseLLMProvider:
    provider_type = config.provider_type.lower()
    if provider_type == "gemini":
        return GeminiProvider(
            provider_id=config.provider_id,
            model_name=config.model_name,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            top_k=config.top_k,
            top_p=config.top_p,
            retry_policy=retry_policy or RetryPolicy(max_retries=config.max_retries),
        )
    if provider_type in {"openai", "deepseek"}:
        policy = retry_policy or RetryPolicy(max_retries=config.max_retries)
        return OpenAIProvider(
            provider_id=config.provider_id,
            model_name=config.model_name,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            retry_policy=policy,
            provider_type=provider_type,
        )
    if provider_type == "fake":
        return FakeProvider(provider_id=config.provider_id, model_name=config.model_name)
    raise ValueError(f"Unsupported provider type: {config.provider_type}")


_CREDENTIAL_ENV = {
    "gemini": ("GEMINI_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "deepseek": ("DEEPSEEK_API_KEY", "OPENAI_API_KEY"),
}


def has_credentials(config: LLMProviderConfig) -> bool:
    """Whether ``config`` can authenticate, from its own key or the environment."""
    provider_type = config.provider_type.lower()
    if provider_type == "fake" or config.api_key:
        return True
    return any(os.getenv(name) for name in _CREDENTIAL_ENV.get(provider_type, ()))
