"""add_approver_overrides_and_approval_deadlines

Revision ID: 8b41e6c0d2a9
Revises: 3f2c9a1d7e50
Create Date: 2026-10-18 14:03:27.518342

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8b41e6c0d2a9"
down_revision: Union[str, Sequence[str], None] = "3f2c9a1d7e50"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column(
        "workflow_instance",
        sa.Column(
            "approver_overrides", sa.JSON(), nullable=False, server_default=sa.text("'{}'")
        ),
    )
    op.add_column(
        "step_approval", sa.Column("timeout_at", sa.DateTime(timezone=True), nullable=True)
    )
    op.add_column(
        "step_approval", sa.Column("escalate_at", sa.DateTime(timezone=True), nullable=True)
    )
    op.create_index("ix_step_approval_timeout_at", "step_approval", ["timeout_at"])
    op.create_index("ix_step_approval_escalate_at", "step_approval", ["escalate_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_step_approval_escalate_at", table_name="step_approval")
    op.drop_index("ix_step_approval_timeout_at", table_name="step_approval")
    op.drop_column("step_approval", "escalate_at")
    op.drop_column("step_approval", "timeout_at")
    op.drop_column("workflow_instance", "approver_overrides")
