"""DDL for the seo_jobs table.

The content tables (podcasts, episodes, people) are owned elsewhere; the
queue only needs them to carry `slug` and `seo_metadata JSONB` columns.
"""

SEO_JOBS_DDL = """
CREATE TABLE IF NOT EXISTS seo_jobs (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    target_kind TEXT NOT NULL CHECK (target_kind IN ('collection', 'item', 'profile')),
    target_id UUID NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
    context JSONB NOT NULL,
    error_message TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT uq_seo_jobs_target UNIQUE (target_id, target_kind)
);

CREATE INDEX IF NOT EXISTS idx_seo_jobs_pending
    ON seo_jobs(created_at) WHERE status = 'pending';
CREATE INDEX IF NOT EXISTS idx_seo_jobs_processing
    ON seo_jobs(updated_at) WHERE status = 'processing';
CREATE INDEX IF NOT EXISTS idx_seo_jobs_kind_status
    ON seo_jobs(target_kind, status);
"""

CONTENT_COLUMNS_DDL = """
ALTER TABLE podcasts ADD COLUMN IF NOT EXISTS seo_metadata JSONB;
ALTER TABLE episodes ADD COLUMN IF NOT EXISTS seo_metadata JSONB;
ALTER TABLE people ADD COLUMN IF NOT EXISTS seo_metadata JSONB;
"""
