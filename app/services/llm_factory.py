"""LLM provider factory and status management."""

from dataclasses import dataclass
from typing import Literal

import structlog

from app.config import Settings, get_settings
from app.services.llm_base import BaseLLMClient

logger = structlog.get_logger(__name__)

# Type aliases
ProviderConfig = Literal["auto", "anthropic", "openrouter"]
ProviderResolved = Literal["anthropic", "openrouter"]


@dataclass
class LLMStatus:
    """LLM configuration status."""

    enabled: bool
    provider_config: ProviderConfig
    provider_resolved: ProviderResolved | None
    models: list[str]


# Module-level singletons
_llm_client: BaseLLMClient | None = None
_llm_status: LLMStatus | None = None
_initialized: bool = False


class LLMStartupError(Exception):
    """Raised when LLM is required but no provider key is configured."""


def _resolve_provider(settings: Settings) -> tuple[ProviderResolved | None, str | None]:
    """
    Resolve which provider to use based on settings.

    Returns:
        (provider_resolved, api_key) tuple, or (None, None) if disabled
    """
    if not settings.llm_enabled:
        return None, None

    anthropic_key = (settings.anthropic_api_key or "").strip() or None
    openrouter_key = (settings.openrouter_api_key or "").strip() or None

    if settings.llm_provider == "anthropic":
        if not anthropic_key:
            raise LLMStartupError("LLM_PROVIDER=anthropic but ANTHROPIC_API_KEY not set")
        return "anthropic", anthropic_key

    if settings.llm_provider == "openrouter":
        if not openrouter_key:
            raise LLMStartupError("LLM_PROVIDER=openrouter but OPENROUTER_API_KEY not set")
        return "openrouter", openrouter_key

    # Auto: prefer Anthropic, fall back to OpenRouter
    if anthropic_key:
        return "anthropic", anthropic_key
    if openrouter_key:
        return "openrouter", openrouter_key

    if settings.llm_required:
        raise LLMStartupError(
            "LLM_REQUIRED=true but no API key configured. "
            "Set ANTHROPIC_API_KEY or OPENROUTER_API_KEY"
        )
    return None, None


def _create_client(
    provider: ProviderResolved, api_key: str, settings: Settings
) -> BaseLLMClient:
    """Create the appropriate LLM client."""
    default_model = settings.seo_models[0]
    if provider == "anthropic":
        from app.services.llm_anthropic import AnthropicLLMClient

        return AnthropicLLMClient(
            api_key=api_key,
            default_model=default_model,
            timeout=settings.llm_timeout,
        )

    from app.services.llm_openrouter import OpenRouterLLMClient

    return OpenRouterLLMClient(
        api_key=api_key,
        default_model=default_model,
        timeout=settings.llm_timeout,
    )


def _initialize() -> None:
    """Initialize the LLM subsystem (idempotent)."""
    global _llm_client, _llm_status, _initialized

    if _initialized:
        return

    settings = get_settings()
    provider_resolved, api_key = _resolve_provider(settings)

    if provider_resolved and api_key:
        _llm_client = _create_client(provider_resolved, api_key, settings)
        logger.info(
            "LLM initialized",
            provider_config=settings.llm_provider,
            provider_resolved=provider_resolved,
            models=settings.seo_models,
        )
    else:
        _llm_client = None
        logger.info(
            "LLM disabled",
            provider_config=settings.llm_provider,
            reason="no API key configured" if settings.llm_enabled else "kill switch",
        )

    _llm_status = LLMStatus(
        enabled=_llm_client is not None,
        provider_config=settings.llm_provider,
        provider_resolved=provider_resolved if _llm_client else None,
        models=list(settings.seo_models),
    )
    _initialized = True


def get_llm_status() -> LLMStatus:
    """Get LLM configuration status."""
    _initialize()
    assert _llm_status is not None
    return _llm_status


def get_llm() -> BaseLLMClient | None:
    """
    Get the cached LLM client.

    Returns:
        BaseLLMClient if LLM is enabled and configured, None otherwise

    Raises:
        LLMStartupError: If LLM_REQUIRED=true and no key configured
    """
    _initialize()
    return _llm_client


def reset_llm() -> None:
    """Reset the LLM singleton (for testing)."""
    global _llm_client, _llm_status, _initialized
    _llm_client = None
    _llm_status = None
    _initialized = False
