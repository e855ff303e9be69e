"""LLM-backed SEO metadata generator."""

import json
import re
from typing import Optional

import structlog
from pydantic import ValidationError

from app.seo.errors import MetadataGenerationError
from app.seo.models import FAQ, GenerationContext, SeoMetadata
from app.seo.prompts import SEO_SYSTEM_PROMPT, build_seo_prompt
from app.seo.slugs import slugify
from app.services.llm_base import BaseLLMClient, LLMError

logger = structlog.get_logger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def parse_metadata_response(text: str) -> SeoMetadata:
    """Parse a model response into SeoMetadata.

    Accepts bare JSON or JSON wrapped in a markdown code fence.

    Raises:
        MetadataGenerationError: Response is not valid JSON or fails validation
    """
    if not text or not text.strip():
        raise MetadataGenerationError("empty response from model")

    match = _FENCED_JSON.search(text)
    payload = match.group(1) if match else text.strip()

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MetadataGenerationError(f"invalid JSON in model response: {e}")

    if not isinstance(data, dict):
        raise MetadataGenerationError("model response is not a JSON object")

    try:
        return SeoMetadata.model_validate(data)
    except ValidationError as e:
        raise MetadataGenerationError(
            f"model response failed validation: {e.error_count()} errors"
        )


def build_fallback_metadata(context: GenerationContext) -> SeoMetadata:
    """Deterministic metadata built from the context alone."""
    title = context.title
    description = context.description or ""

    meta_title = title if len(title) <= 60 else title[:57] + "..."
    meta_description = (
        description if len(description) <= 155 else description[:152] + "..."
    )

    words = re.sub(r"[^a-z\s]", "", f"{title} {description}".lower()).split()
    keywords = list(dict.fromkeys(w for w in words if len(w) > 3))[:8]

    summary = description[:100] + ("..." if len(description) > 100 else "")
    faqs = [
        FAQ(question=f"What is {title} about?", answer=summary or title),
        FAQ(
            question=f"Who would enjoy {title}?",
            answer=f"Anyone interested in {context.content_type} content and related topics.",
        ),
    ]

    return SeoMetadata(
        slug=slugify(title) or None,
        meta_title=meta_title,
        meta_description=meta_description,
        keywords=keywords,
        faqs=faqs,
    )


class LLMMetadataGenerator:
    """Generates SEO metadata by prompting an LLM for JSON.

    Models are tried in order; the first response that parses and validates
    wins. No retries beyond the model list: failed jobs are retried by
    requeueing them.
    """

    def __init__(
        self,
        llm: BaseLLMClient,
        models: Optional[list[str]] = None,
        max_tokens: int = 4000,
        fallback_enabled: bool = False,
        temperature: float = 0.7,
    ):
        self._llm = llm
        self._models = models or [llm.default_model]
        self._max_tokens = max_tokens
        self._fallback_enabled = fallback_enabled
        self._temperature = temperature

    async def generate(self, context: GenerationContext) -> SeoMetadata:
        prompt = build_seo_prompt(context)
        last_error: Optional[Exception] = None

        for index, model in enumerate(self._models):
            log = logger.bind(
                model=model,
                attempt=index + 1,
                content_type=context.content_type,
            )
            try:
                text = await self._llm.generate_text(
                    prompt,
                    system=SEO_SYSTEM_PROMPT,
                    model=model,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                )
                metadata = parse_metadata_response(text)
            except (LLMError, MetadataGenerationError) as e:
                log.warning("seo_model_failed", error=str(e))
                last_error = e
                continue

            log.debug("seo_model_succeeded")
            return metadata

        if self._fallback_enabled:
            logger.warning(
                "seo_generation_fallback",
                title=context.title,
                error=str(last_error) if last_error else None,
            )
            return build_fallback_metadata(context)

        raise MetadataGenerationError(
            f"all {len(self._models)} models failed: {last_error}",
            model=self._models[-1] if self._models else None,
        )
