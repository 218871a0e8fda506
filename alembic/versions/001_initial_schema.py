"""Initial schema — assignments, directory, rules and ETA tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Directory users
    op.create_table(
        "directory_users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(300), unique=True, nullable=False),
        sa.Column("role", sa.String(50), nullable=True),
        sa.Column(
            "practices", ARRAY(sa.String(200)), nullable=False, server_default="{}"
        ),
    )

    # SA-to-AM mappings
    op.create_table(
        "sa_am_mappings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("specialist_name", sa.String(200), nullable=False),
        sa.Column("specialist_email", sa.String(300), nullable=True),
        sa.Column("owner_name", sa.String(200), nullable=True),
        sa.Column("owner_email", sa.String(300), nullable=False),
        sa.Column("region", sa.String(20), nullable=True),
        sa.Column(
            "practices", ARRAY(sa.String(200)), nullable=False, server_default="{}"
        ),
    )
    op.create_index("idx_sa_am_mappings_owner", "sa_am_mappings", ["owner_email"])

    # Processing rules
    op.create_table(
        "processing_rules",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), unique=True, nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("sender_pattern", sa.String(300), nullable=True),
        sa.Column("subject_pattern", sa.String(300), nullable=True),
        sa.Column("body_pattern", sa.Text, nullable=True),
        sa.Column("keyword_mappings", JSONB, nullable=False, server_default="[]"),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default="true"),
    )

    # Assignments
    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("opportunity_id", sa.String(100), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="Pending"),
        sa.Column(
            "practices", ARRAY(sa.String(200)), nullable=False, server_default="{}"
        ),
        sa.Column("practice_assignments", JSONB, nullable=False, server_default="{}"),
        sa.Column("completions", JSONB, nullable=False, server_default="{}"),
        sa.Column("owner", sa.String(300), nullable=True),
        sa.Column("isr", sa.String(300), nullable=True),
        sa.Column("pm", sa.String(200), nullable=True),
        sa.Column("customer_name", sa.String(300), nullable=True),
        sa.Column("opportunity_name", sa.Text, nullable=True),
        sa.Column("region", sa.String(20), nullable=True),
        sa.Column("eta", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("opportunity_url", sa.String(500), nullable=True),
        sa.Column("submitted_by", sa.String(300), nullable=True),
        sa.Column("notification_users", JSONB, nullable=False, server_default="[]"),
        sa.Column("source_email_id", sa.String(300), nullable=True),
        sa.Column("details", JSONB, nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("unassigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pending_approval_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("kind", "opportunity_id", name="uq_assignments_kind_opportunity"),
    )
    op.create_index("idx_assignments_status", "assignments", ["status"])

    # Status transition events
    op.create_table(
        "status_transition_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "assignment_id",
            sa.Integer,
            sa.ForeignKey("assignments.id"),
            nullable=False,
        ),
        sa.Column("practice", sa.String(200), nullable=False),
        sa.Column("from_status", sa.String(30), nullable=False),
        sa.Column("to_status", sa.String(30), nullable=False),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("duration_hours", sa.Float, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_status_events_assignment", "status_transition_events", ["assignment_id"]
    )

    # Practice ETA aggregates
    op.create_table(
        "practice_etas",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("practice", sa.String(200), nullable=False),
        sa.Column("transition", sa.String(50), nullable=False),
        sa.Column("avg_duration_hours", sa.Float, nullable=False, server_default="0"),
        sa.Column("sample_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "practice", "transition", name="uq_practice_etas_practice_transition"
        ),
    )


def downgrade() -> None:
    op.drop_table("practice_etas")
    op.drop_table("status_transition_events")
    op.drop_table("assignments")
    op.drop_table("processing_rules")
    op.drop_table("sa_am_mappings")
    op.drop_table("directory_users")
