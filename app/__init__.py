"""SEO Metadata Queue - catalog SEO generation pipeline

Schedules, executes and tracks SEO metadata generation for podcasts,
episodes and people through a Postgres-backed job queue.
"""

__version__ = "0.1.0"
