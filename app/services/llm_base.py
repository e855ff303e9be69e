"""Provider-neutral LLM client interface.

The metadata generator only talks to BaseLLMClient; each provider adapter
translates its SDK or HTTP failures into the LLMError family below so the
generator can record a readable failure on the job.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, TypedDict

Role = Literal["system", "user", "assistant"]


class Message(TypedDict):
    role: Role
    content: str


@dataclass
class LLMResponse:
    """One completion returned by a provider."""

    text: str
    model: str
    provider: str
    usage: dict | None = None  # {input_tokens, output_tokens}
    latency_ms: float | None = None


class LLMError(Exception):
    """A provider call failed."""

    def __init__(self, message: str, provider: str, model: str | None = None):
        self.provider = provider
        self.model = model
        super().__init__(message)


class LLMTimeoutError(LLMError):
    def __init__(
        self,
        message: str = "LLM request timed out",
        provider: str = "unknown",
        model: str | None = None,
        timeout_seconds: float | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        super().__init__(message, provider, model)


class LLMRateLimitError(LLMError):
    def __init__(
        self,
        message: str = "Rate limited by LLM provider",
        provider: str = "unknown",
        model: str | None = None,
        retry_after_seconds: int | None = None,
    ):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message, provider, model)


class LLMAPIError(LLMError):
    """Non-rate-limit error status from the provider."""

    def __init__(
        self,
        message: str = "LLM provider API error",
        provider: str = "unknown",
        model: str | None = None,
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, provider, model)


class BaseLLMClient(ABC):
    """Chat-completion client bound to a provider and a default model."""

    provider: str = "base"

    def __init__(self, default_model: str):
        self.default_model = default_model

    @abstractmethod
    async def generate(
        self,
        *,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Run one chat completion.

        `model` falls back to default_model; `temperature=None` leaves the
        provider default in place. Raises LLMError subclasses on failure.
        """

    async def generate_text(
        self,
        prompt: str,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> str:
        """Single-turn helper returning only the completion text."""
        messages: list[Message] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = await self.generate(
            messages=messages,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.text
