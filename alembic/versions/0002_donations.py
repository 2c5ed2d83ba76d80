"""donations table

Revision ID: 0002_donations
Revises: 0001_wells
Create Date: 2025-03-01

"""

from alembic import op

revision = "0002_donations"
down_revision = "0001_wells"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
    CREATE TABLE IF NOT EXISTS donations (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      campaign_id UUID NOT NULL REFERENCES wells(id),
      donor_id TEXT NOT NULL,
      amount INTEGER NOT NULL CHECK (amount > 0),
      currency TEXT NOT NULL DEFAULT 'usd',
      charge_id TEXT NOT NULL UNIQUE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );

    CREATE INDEX IF NOT EXISTS idx_donations_well ON donations(campaign_id, created_at);
    """
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS donations")
