"""Anthropic LLM client using the official SDK."""

import time

import structlog
from anthropic import (
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncAnthropic,
    RateLimitError,
)

from app.services.llm_base import (
    BaseLLMClient,
    LLMAPIError,
    LLMError,
    LLMRateLimitError,
    LLMResponse,
    LLMTimeoutError,
    Message,
)

logger = structlog.get_logger(__name__)


class AnthropicLLMClient(BaseLLMClient):
    """Messages API client; system messages map to the `system` parameter."""

    provider = "anthropic"

    def __init__(self, api_key: str, default_model: str, timeout: int = 60):
        super().__init__(default_model)
        self.client = AsyncAnthropic(api_key=api_key, timeout=timeout)
        self.timeout = timeout

    async def generate(
        self,
        *,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Generate a response using the Anthropic Messages API."""
        model = model or self.default_model

        # Anthropic takes the system prompt separately, not as a message
        system_parts: list[str] = []
        chat_messages: list[dict] = []
        for msg in messages:
            if msg["role"] == "system":
                system_parts.append(msg["content"])
            else:
                chat_messages.append({"role": msg["role"], "content": msg["content"]})

        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "system": "\n\n".join(system_parts),
            "messages": chat_messages,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            start = time.perf_counter()
            response = await self.client.messages.create(**kwargs)
            latency_ms = (time.perf_counter() - start) * 1000
        except RateLimitError as e:
            logger.warning("Anthropic rate limited", model=model, error=str(e))
            raise LLMRateLimitError(str(e), provider=self.provider, model=model)
        except APITimeoutError as e:
            logger.warning("Anthropic request timed out", model=model)
            raise LLMTimeoutError(
                str(e),
                provider=self.provider,
                model=model,
                timeout_seconds=self.timeout,
            )
        except APIStatusError as e:
            logger.error(
                "Anthropic API error",
                model=model,
                status_code=e.status_code,
                error=str(e),
            )
            raise LLMAPIError(
                f"Anthropic API error: {e}",
                provider=self.provider,
                model=model,
                status_code=e.status_code,
            )
        except APIError as e:
            logger.error("Anthropic API error", model=model, error=str(e))
            raise LLMError(
                f"Anthropic API error: {e}", provider=self.provider, model=model
            )

        text = "".join(
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
        usage = {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
        }

        logger.debug(
            "Anthropic generation complete",
            model=response.model,
            input_tokens=usage["input_tokens"],
            output_tokens=usage["output_tokens"],
            latency_ms=round(latency_ms, 2),
        )

        return LLMResponse(
            text=text,
            model=response.model,
            provider=self.provider,
            usage=usage,
            latency_ms=latency_ms,
        )
