"""add_automation_rule_table

Revision ID: c5d7a3e91f04
Revises: 8b41e6c0d2a9
Create Date: 2026-10-18 15:41:09.274615

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c5d7a3e91f04"
down_revision: Union[str, Sequence[str], None] = "8b41e6c0d2a9"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "automation_rule",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rule_type", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("trigger_event", sa.String(length=100), nullable=False),
        sa.Column(
            "trigger_condition", sa.JSON(), server_default=sa.text("'{}'"), nullable=False
        ),
        sa.Column("action_type", sa.String(length=100), nullable=False),
        sa.Column("action_config", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("priority", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_by", sa.String(length=320), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_automation_rule_tenant_name"),
    )
    op.create_index("ix_automation_rule_tenant_id", "automation_rule", ["tenant_id"])
    op.create_index(
        "ix_automation_rule_tenant_trigger",
        "automation_rule",
        ["tenant_id", "entity_type", "trigger_event"],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_automation_rule_tenant_trigger", table_name="automation_rule")
    op.drop_index("ix_automation_rule_tenant_id", table_name="automation_rule")
    op.drop_table("automation_rule")
