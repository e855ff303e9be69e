"""Prompt templates for SEO metadata generation."""

from typing import Any

from app.seo.models import GenerationContext

SITE_NAME = "PodDB"
SITE_URL = "https://poddb.com"

SEO_SYSTEM_PROMPT = (
    "You are an expert SEO specialist for a podcast database website. "
    "Generate comprehensive, detailed SEO metadata in valid JSON format only."
)

_SCHEMA_TYPES = {
    "podcast": ("podcast_schema", "PodcastSeries"),
    "episode": ("episode_schema", "PodcastEpisode"),
    "person": ("person_schema", "Person"),
}

SEO_USER_PROMPT = """Generate comprehensive SEO metadata for the content below.

IMPORTANT: Respond ONLY with valid JSON. No explanations, no markdown, just pure JSON.

Content to analyze:
- Type: {content_type}
- Title: {title}
- Description: {description}
{details}
Return a JSON object with these keys:
- "slug": URL-friendly slug (lowercase, hyphens, max 50 characters)
- "meta_title": SEO title under 60 characters
- "meta_description": compelling description under 155 characters
- "keywords": 6-10 targeted keywords
- "faqs": 4-6 objects with "question" and "answer" about this {content_type}
- "schema_markup": object with key "{schema_key}" holding a schema.org "{schema_type}" object
- "social_media": object with "og_tags" (og:title, og:description, og:type) and "twitter_cards" (twitter:card, twitter:title, twitter:description)
- "content_enhancement": object with "summary", "target_audience", "key_topics" (list), "unique_selling_points" (list)
- "technical_seo": object with "canonical_url" under {site_url}/{content_type}/<slug>

Use the actual data provided above. Be specific, not generic."""  # noqa: E501


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def build_context_details(context: GenerationContext) -> str:
    """Render related info and additional context as prompt bullet lines."""
    lines = []
    if context.related_info:
        lines.append(f"- Related: {context.related_info}")

    for key, value in (context.additional_context or {}).items():
        if value in (None, "", [], {}):
            continue
        label = key.replace("_", " ").capitalize()
        if key in ("duration", "average_duration") and isinstance(value, (int, float)):
            lines.append(f"- {label}: {round(value / 60)} minutes")
        else:
            lines.append(f"- {label}: {_format_value(value)}")

    return "\n".join(lines) + ("\n" if lines else "")


def build_seo_prompt(context: GenerationContext) -> str:
    """Build the user prompt for one generation call."""
    schema_key, schema_type = _SCHEMA_TYPES[context.content_type]
    return SEO_USER_PROMPT.format(
        content_type=context.content_type,
        title=context.title,
        description=context.description or "(none)",
        details=build_context_details(context),
        schema_key=schema_key,
        schema_type=schema_type,
        site_url=SITE_URL,
    )
