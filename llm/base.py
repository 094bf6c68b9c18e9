"""Provider interface, reply record and call metrics."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import asdict, dataclass


class ProviderError(RuntimeError):
    """Non-success reply from a provider, or a reply missing the expected text."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class LLMResponse:
    text: str
    usage: dict[str, int]
    latency_ms: float
    model_id: str


@dataclass
class CallMetrics:
    calls: int = 0
    errors: int = 0
    total_latency_ms: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.calls if self.calls else 0.0


class BaseLLMProvider(ABC):
    """Async interface every suggestion backend implements."""

    provider_id: str
    model_name: str

    def __init__(self, provider_id: str, model_name: str) -> None:
        self.provider_id = provider_id
        self.model_name = model_name
        self.metrics = CallMetrics()

    @abstractmethod
    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> LLMResponse:
        """Return the model's reply to ``prompt``; raise on transport or API faults."""

    @abstractmethod
    def get_provider_info(self) -> dict[str, object]:
        """Return metadata about the provider/model."""

    def record_call(self, latency_ms: float, usage: Mapping[str, int] | None = None) -> None:
        usage = usage or {}
        self.metrics.calls += 1
        self.metrics.total_latency_ms += latency_ms
        self.metrics.total_input_tokens += int(usage.get("prompt_tokens", 0))
        self.metrics.total_output_tokens += int(usage.get("completion_tokens", 0))

    def record_error(self) -> None:
        self.metrics.errors += 1

    def get_metrics(self) -> dict[str, object]:
        snapshot: dict[str, object] = asdict(self.metrics)
        snapshot["avg_latency_ms"] = self.metrics.avg_latency_ms
        return snapshot
