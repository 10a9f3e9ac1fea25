"""001 – Initial schema: users, teams, leave requests, audit trail.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["admin", "leader", "user"]),
    ("leave_status", ["pending", "approved", "rejected"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. teams ──────────────────────────────────────────────────────────
    # leader_id has no foreign key: users.team_id already points here
    op.execute("""
        CREATE TABLE teams (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(100) NOT NULL UNIQUE,
            description TEXT,
            leader_id   UUID,
            settings    JSONB,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.create_index("ix_teams_leader_id", "teams", ["leader_id"])

    # ── 2. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            username        VARCHAR(50)  NOT NULL UNIQUE,
            name            VARCHAR(100) NOT NULL,
            role            user_role    NOT NULL DEFAULT 'user',
            team_id         UUID REFERENCES teams(id),
            password_hash   VARCHAR(255) NOT NULL,
            shift_pattern   JSONB,
            shift_time      JSONB,
            carry_over_days INTEGER NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.create_index("ix_users_team_id", "users", ["team_id"])

    # ── 3. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            owner_id            UUID NOT NULL REFERENCES users(id),
            team_id             UUID REFERENCES teams(id),
            start_date          DATE NOT NULL,
            end_date            DATE NOT NULL,
            reason              TEXT,
            status              leave_status NOT NULL DEFAULT 'pending',
            working_days_count  INTEGER NOT NULL,
            calendar_days_count INTEGER NOT NULL,
            shift_pattern_kind  VARCHAR(20),
            shift_time          VARCHAR(20),
            overridden          BOOLEAN NOT NULL DEFAULT FALSE,
            reviewed_by         UUID REFERENCES users(id),
            reviewed_at         TIMESTAMPTZ,
            created_at          TIMESTAMPTZ DEFAULT NOW(),
            updated_at          TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_span CHECK (start_date <= end_date)
        )
    """)
    op.create_index("ix_leave_requests_owner_id", "leave_requests", ["owner_id"])
    op.create_index(
        "ix_leave_team_span",
        "leave_requests",
        ["team_id", "status", "start_date", "end_date"],
    )

    # ── 4. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID REFERENCES users(id),
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.create_index("ix_audit_trail_actor_id", "audit_trail", ["actor_id"])
    op.create_index("ix_audit_trail_entity", "audit_trail", ["entity_type", "entity_id"])
    op.create_index("ix_audit_trail_action", "audit_trail", ["action"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    for t in ["audit_trail", "leave_requests", "users", "teams"]:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
