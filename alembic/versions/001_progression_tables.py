"""Progression tables.

Creates pacts, goals, steps, ranks, achievement_definitions,
user_achievements, achievement_tracking, health_streaks and notifications.

Revision ID: 001_progression_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Pacts / goals / steps ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS pacts (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            name VARCHAR(128) NOT NULL,
            mantra TEXT,
            symbol VARCHAR(32),
            project_start_date DATE,
            project_end_date DATE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_pacts_user ON pacts(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS goals (
            id VARCHAR(36) PRIMARY KEY,
            pact_id VARCHAR(36) NOT NULL REFERENCES pacts(id) ON DELETE CASCADE,
            name VARCHAR(256) NOT NULL,
            category VARCHAR(64),
            difficulty VARCHAR(16) NOT NULL DEFAULT 'medium',
            goal_type VARCHAR(16) NOT NULL DEFAULT 'standard',
            status VARCHAR(32) NOT NULL DEFAULT 'not_started',
            total_steps INTEGER NOT NULL DEFAULT 0,
            validated_steps INTEGER NOT NULL DEFAULT 0,
            potential_score INTEGER NOT NULL DEFAULT 0 CHECK (potential_score >= 0),
            is_focus BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completion_date TIMESTAMPTZ,
            habit_duration_days INTEGER,
            habit_checks JSONB
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_goals_pact ON goals(pact_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS steps (
            id VARCHAR(36) PRIMARY KEY,
            goal_id VARCHAR(36) NOT NULL REFERENCES goals(id) ON DELETE CASCADE,
            title VARCHAR(256) NOT NULL DEFAULT '',
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            "order" INTEGER NOT NULL,
            completion_date TIMESTAMPTZ,
            CONSTRAINT steps_goal_id_order_key UNIQUE (goal_id, "order")
        )
    """)

    # --- Ranks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ranks (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            name VARCHAR(128) NOT NULL,
            min_points INTEGER NOT NULL,
            quote TEXT,
            CONSTRAINT ranks_user_id_min_points_key UNIQUE (user_id, min_points)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_ranks_user ON ranks(user_id)")

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievement_definitions (
            id SERIAL PRIMARY KEY,
            key VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            flavor_text TEXT,
            category VARCHAR(32) NOT NULL,
            rarity VARCHAR(16) NOT NULL,
            icon_key VARCHAR(64) NOT NULL DEFAULT 'trophy',
            is_hidden BOOLEAN NOT NULL DEFAULT false,
            conditions JSONB NOT NULL DEFAULT '{}',
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            achievement_key VARCHAR(64) NOT NULL,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            seen BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT user_achievements_user_id_key_key UNIQUE (user_id, achievement_key)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_user_achievements_user ON user_achievements(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS achievement_tracking (
            user_id VARCHAR(64) PRIMARY KEY,
            consecutive_login_days INTEGER NOT NULL DEFAULT 0,
            last_login_date DATE,
            logins_at_same_hour_streak INTEGER NOT NULL DEFAULT 0,
            usual_login_hour INTEGER,
            midnight_logins_count INTEGER NOT NULL DEFAULT 0,
            total_goals_created INTEGER NOT NULL DEFAULT 0,
            easy_goals_created INTEGER NOT NULL DEFAULT 0,
            medium_goals_created INTEGER NOT NULL DEFAULT 0,
            hard_goals_created INTEGER NOT NULL DEFAULT 0,
            extreme_goals_created INTEGER NOT NULL DEFAULT 0,
            impossible_goals_created INTEGER NOT NULL DEFAULT 0,
            custom_goals_created INTEGER NOT NULL DEFAULT 0,
            goals_completed_total INTEGER NOT NULL DEFAULT 0,
            easy_goals_completed INTEGER NOT NULL DEFAULT 0,
            medium_goals_completed INTEGER NOT NULL DEFAULT 0,
            hard_goals_completed INTEGER NOT NULL DEFAULT 0,
            extreme_goals_completed INTEGER NOT NULL DEFAULT 0,
            impossible_goals_completed INTEGER NOT NULL DEFAULT 0,
            custom_goals_completed INTEGER NOT NULL DEFAULT 0,
            steps_completed_total INTEGER NOT NULL DEFAULT 0,
            has_pact BOOLEAN NOT NULL DEFAULT false,
            has_edited_pact BOOLEAN NOT NULL DEFAULT false,
            current_rank_tier INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Streaks / notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS health_streaks (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) UNIQUE NOT NULL,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_checkin_date DATE,
            total_checkins INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            type VARCHAR(32) NOT NULL,
            subtype VARCHAR(64) NOT NULL,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            action_url VARCHAR(256),
            action_label VARCHAR(64),
            read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, created_at DESC)")


def downgrade() -> None:
    for table in [
        "notifications",
        "health_streaks",
        "achievement_tracking",
        "user_achievements",
        "achievement_definitions",
        "ranks",
        "steps",
        "goals",
        "pacts",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")  # noqa: S608
