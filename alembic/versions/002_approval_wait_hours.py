"""Track time spent waiting for approval on assignments.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "assignments",
        sa.Column("approval_wait_hours", sa.Float, nullable=False, server_default="0"),
    )


def downgrade() -> None:
    op.drop_column("assignments", "approval_wait_hours")
