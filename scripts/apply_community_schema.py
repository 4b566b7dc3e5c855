#!/usr/bin/env python3
"""Create the community contribution tables used by trust_engine (idempotent)."""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import psycopg

from trust_engine.config import get_settings

SCHEMA_STATEMENTS = [
    (
        "public.profiles",
        """
        CREATE TABLE IF NOT EXISTS public.profiles (
            id                  TEXT PRIMARY KEY,
            contributor_score   INTEGER NOT NULL DEFAULT 0 CHECK (contributor_score >= 0),
            is_verified_expert  BOOLEAN NOT NULL DEFAULT false,
            badge_type          TEXT,
            is_banned           BOOLEAN NOT NULL DEFAULT false,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
    (
        "public.contributions",
        """
        CREATE TABLE IF NOT EXISTS public.contributions (
            id                    UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            target_entity_id      TEXT NOT NULL,
            author_id             TEXT REFERENCES public.profiles(id),
            guest_name            TEXT,
            content               TEXT NOT NULL CHECK (char_length(content) BETWEEN 3 AND 2000),
            parent_id             UUID REFERENCES public.contributions(id) ON DELETE CASCADE,
            post_type             TEXT NOT NULL DEFAULT 'community_experience'
                                  CHECK (post_type IN ('verified_insight', 'community_experience')),
            pillar_of_truth       TEXT,
            star_rating           SMALLINT CHECK (star_rating BETWEEN 1 AND 5),
            is_official_response  BOOLEAN NOT NULL DEFAULT false,
            flag_count            INTEGER NOT NULL DEFAULT 0 CHECK (flag_count >= 0),
            is_flagged            BOOLEAN NOT NULL DEFAULT false,
            status                TEXT NOT NULL DEFAULT 'approved'
                                  CHECK (status IN ('approved', 'pending_review', 'rejected')),
            insight_summary       TEXT,
            source_metadata       JSONB,
            raise_hand_count      INTEGER NOT NULL DEFAULT 0,
            created_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT contributions_author_xor_guest
                CHECK ((author_id IS NULL) <> (guest_name IS NULL)),
            CONSTRAINT contributions_pillar_iff_insight
                CHECK ((post_type = 'verified_insight') = (pillar_of_truth IS NOT NULL))
        )
        """,
    ),
    (
        "contributions indexes",
        """
        CREATE INDEX IF NOT EXISTS idx_contributions_target
            ON public.contributions (target_entity_id, created_at DESC)
        """,
    ),
    (
        "public.sme_summons",
        """
        CREATE TABLE IF NOT EXISTS public.sme_summons (
            id                           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            target_entity_id             TEXT NOT NULL,
            is_resolved                  BOOLEAN NOT NULL DEFAULT false,
            resolved_by_contribution_id  UUID REFERENCES public.contributions(id),
            resolved_at                  TIMESTAMPTZ,
            created_at                   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
    (
        "public.comment_signals",
        """
        CREATE TABLE IF NOT EXISTS public.comment_signals (
            id               UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id          TEXT NOT NULL,
            contribution_id  UUID NOT NULL REFERENCES public.contributions(id) ON DELETE CASCADE,
            signal_type      TEXT NOT NULL DEFAULT 'raise_hand',
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE (user_id, contribution_id, signal_type)
        )
        """,
    ),
    (
        "public.citations",
        """
        CREATE TABLE IF NOT EXISTS public.citations (
            id               UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            contribution_id  UUID NOT NULL UNIQUE REFERENCES public.contributions(id) ON DELETE CASCADE,
            resource_title   TEXT NOT NULL,
            resource_url     TEXT NOT NULL,
            is_prescreened   BOOLEAN NOT NULL DEFAULT false,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
    (
        "public.keyword_blacklist",
        """
        CREATE TABLE IF NOT EXISTS public.keyword_blacklist (
            id          SERIAL PRIMARY KEY,
            keyword     TEXT NOT NULL UNIQUE,
            reason      TEXT,
            is_active   BOOLEAN NOT NULL DEFAULT true,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
    (
        "public.moderation_queue",
        """
        CREATE TABLE IF NOT EXISTS public.moderation_queue (
            id                        UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            original_contribution_id  UUID NOT NULL,
            kind                      TEXT NOT NULL,
            target_entity_id          TEXT NOT NULL,
            author_id                 TEXT,
            content                   TEXT NOT NULL,
            flag_count                INTEGER NOT NULL DEFAULT 1,
            original_created_at       TIMESTAMPTZ NOT NULL,
            status                    TEXT NOT NULL DEFAULT 'pending',
            created_at                TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
    (
        "public.notifications",
        """
        CREATE TABLE IF NOT EXISTS public.notifications (
            id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id     TEXT NOT NULL,
            title       TEXT NOT NULL,
            message     TEXT NOT NULL,
            type        TEXT NOT NULL DEFAULT 'info'
                        CHECK (type IN ('info', 'success', 'warning', 'error')),
            link        TEXT,
            is_read     BOOLEAN NOT NULL DEFAULT false,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
    (
        "notifications indexes",
        """
        CREATE INDEX IF NOT EXISTS idx_notifications_user
            ON public.notifications (user_id, created_at DESC)
        """,
    ),
    (
        "public.entity_ratings",
        """
        CREATE TABLE IF NOT EXISTS public.entity_ratings (
            target_entity_id  TEXT PRIMARY KEY,
            average_rating    NUMERIC(3, 2) NOT NULL DEFAULT 0,
            rating_count      INTEGER NOT NULL DEFAULT 0,
            updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
    ),
]


def main():
    dsn = get_settings().database_url
    if not dsn:
        print("❌ DATABASE_URL not set")
        sys.exit(1)

    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            for name, statement in SCHEMA_STATEMENTS:
                print(f"Applying {name}...")
                cur.execute(statement)
                print(f"✅ {name}")

        conn.commit()
    print("Community schema applied successfully")


if __name__ == "__main__":
    main()
