"""Ledger tables.

Creates user_profiles, check_ins, reviews and tiers. The unique
(user_id, event_id) constraints on check_ins and reviews are what make
accrual creation conditional.

Revision ID: 001_ledger_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_ledger_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- User Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_profiles (
            id VARCHAR(36) PRIMARY KEY,
            auth_id VARCHAR(64) UNIQUE NOT NULL,
            total_points BIGINT NOT NULL DEFAULT 0,
            total_events INTEGER NOT NULL DEFAULT 0,
            total_reviews INTEGER NOT NULL DEFAULT 0,
            notification_preferences JSONB DEFAULT '{}',
            notifications TEXT[] DEFAULT '{}',
            notifications_version INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)

    # --- Check-ins ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS check_ins (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            event_id VARCHAR(64) NOT NULL,
            check_in_code VARCHAR(64) NOT NULL,
            points_earned INTEGER NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT check_ins_user_id_event_id_key UNIQUE (user_id, event_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_check_ins_user_id
        ON check_ins(user_id)
    """)

    # --- Reviews ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reviews (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            event_id VARCHAR(64) NOT NULL,
            rating SMALLINT NOT NULL CHECK (rating BETWEEN 1 AND 5),
            review TEXT,
            liked VARCHAR(32),
            has_purchased BOOLEAN,
            points_earned INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT reviews_user_id_event_id_key UNIQUE (user_id, event_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_reviews_user_id
        ON reviews(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_reviews_event_id
        ON reviews(event_id)
    """)

    # --- Tiers ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tiers (
            id VARCHAR(36) PRIMARY KEY,
            "order" INTEGER UNIQUE NOT NULL,
            name VARCHAR(64) NOT NULL,
            required_points INTEGER NOT NULL,
            description TEXT,
            image_url VARCHAR(512),
            benefits VARCHAR(128)[] DEFAULT '{}'
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS tiers")
    op.execute("DROP TABLE IF EXISTS reviews")
    op.execute("DROP TABLE IF EXISTS check_ins")
    op.execute("DROP TABLE IF EXISTS user_profiles")
