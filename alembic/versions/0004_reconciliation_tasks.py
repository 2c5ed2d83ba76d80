"""reconciliation tasks

Revision ID: 0004_reconciliation_tasks
Revises: 0003_messages
Create Date: 2025-03-04

"""

from alembic import op
import sqlalchemy as sa

revision = "0004_reconciliation_tasks"
down_revision = "0003_messages"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "reconciliation_tasks",
        sa.Column("id", sa.dialects.postgresql.UUID, primary_key=True),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="pending"),
        sa.Column("campaign_id", sa.dialects.postgresql.UUID, nullable=False),
        sa.Column("donor_id", sa.Text(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("charge_id", sa.Text(), nullable=True),
        sa.Column("donation_id", sa.dialects.postgresql.UUID, nullable=True),
        sa.Column(
            "payload",
            sa.dialects.postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("note", sa.Text(), nullable=True),
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
    )
    op.create_index(
        "idx_reconciliation_pending",
        "reconciliation_tasks",
        ["created_at"],
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index("idx_reconciliation_pending", table_name="reconciliation_tasks")
    op.drop_table("reconciliation_tasks")
