#!/usr/bin/env python3
"""Apply the seo_jobs schema (and seo_metadata columns on content tables)."""
import asyncio
import os
import sys

import asyncpg

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.seo.schema import CONTENT_COLUMNS_DDL, SEO_JOBS_DDL  # noqa: E402


async def main():
    conn = await asyncpg.connect(os.environ["DATABASE_URL"], statement_cache_size=0)
    try:
        await conn.execute(SEO_JOBS_DDL)
        print("seo_jobs table applied")

        if "--with-content-columns" in sys.argv:
            await conn.execute(CONTENT_COLUMNS_DDL)
            print("seo_metadata columns ensured on podcasts, episodes, people")

        # Verify
        count = await conn.fetchval(
            "SELECT COUNT(*) FROM information_schema.columns WHERE table_name = 'seo_jobs'"
        )
        print(f"Table has {count} columns")
    finally:
        await conn.close()

if __name__ == "__main__":
    asyncio.run(main())
