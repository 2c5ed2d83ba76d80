"""messages table

Revision ID: 0003_messages
Revises: 0002_donations
Create Date: 2025-03-02

"""

from alembic import op
import sqlalchemy as sa

revision = "0003_messages"
down_revision = "0002_donations"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "messages",
        sa.Column("id", sa.dialects.postgresql.UUID, primary_key=True),
        sa.Column(
            "campaign_id",
            sa.dialects.postgresql.UUID,
            sa.ForeignKey("wells.id"),
            nullable=False,
        ),
        sa.Column(
            "donation_id",
            sa.dialects.postgresql.UUID,
            sa.ForeignKey("donations.id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("author_id", sa.Text(), nullable=False),
        sa.Column("text", sa.String(500), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("idx_messages_well", "messages", ["campaign_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_messages_well", table_name="messages")
    op.drop_table("messages")
