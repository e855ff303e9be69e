"""OpenRouter LLM client for accessing multiple providers via proxy."""

import time

import httpx
import structlog

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


class OpenRouterLLMClient(BaseLLMClient):
    """LLM client using OpenRouter API (proxy to multiple providers)."""

    provider = "openrouter"
    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: str,
        default_model: str,
        timeout: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the OpenRouter client.

        Args:
            api_key: OpenRouter API key
            default_model: Model used when a call does not name one
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        super().__init__(default_model)
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def generate(
        self,
        *,
        messages: list[Message],
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Generate a response using the OpenRouter chat completions API."""
        model = model or self.default_model

        body: dict = {
            "model": model,
            "messages": [
                {"role": msg["role"], "content": msg["content"]} for msg in messages
            ],
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            body["temperature"] = temperature

        try:
            start = time.perf_counter()
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.OPENROUTER_BASE_URL}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                        "X-Title": "SEO Metadata Queue",
                    },
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
            latency_ms = (time.perf_counter() - start) * 1000
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(
                "OpenRouter API HTTP error",
                model=model,
                status_code=status_code,
                error=str(e),
            )
            if status_code == 429:
                retry_after = e.response.headers.get("retry-after")
                raise LLMRateLimitError(
                    f"OpenRouter rate limited: {e}",
                    provider=self.provider,
                    model=model,
                    retry_after_seconds=int(retry_after)
                    if retry_after and retry_after.isdigit()
                    else None,
                )
            raise LLMAPIError(
                f"OpenRouter API error: {status_code} - {e}",
                provider=self.provider,
                model=model,
                status_code=status_code,
            )
        except httpx.TimeoutException as e:
            logger.error("OpenRouter request timed out", model=model)
            raise LLMTimeoutError(
                f"OpenRouter request timed out: {e}",
                provider=self.provider,
                model=model,
                timeout_seconds=self.timeout,
            )
        except httpx.RequestError as e:
            logger.error("OpenRouter request error", model=model, error=str(e))
            raise LLMError(
                f"OpenRouter request failed: {e}",
                provider=self.provider,
                model=model,
            )

        choices = data.get("choices", [])
        if not choices:
            raise LLMError(
                "No response from OpenRouter",
                provider=self.provider,
                model=model,
            )

        text = choices[0].get("message", {}).get("content") or ""

        usage_data = data.get("usage", {})
        usage = None
        if usage_data:
            usage = {
                "input_tokens": usage_data.get("prompt_tokens", 0),
                "output_tokens": usage_data.get("completion_tokens", 0),
            }

        # Actual model used may differ from requested
        actual_model = data.get("model", model)

        logger.debug(
            "OpenRouter generation complete",
            model=actual_model,
            latency_ms=round(latency_ms, 2),
        )

        return LLMResponse(
            text=text,
            model=actual_model,
            provider=self.provider,
            usage=usage,
            latency_ms=latency_ms,
        )
