"""wells table

Revision ID: 0001_wells
Revises:
Create Date: 2025-03-01

"""

from alembic import op

revision = "0001_wells"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
    DO $$
    BEGIN
      IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'well_status') THEN
        CREATE TYPE well_status AS ENUM ('open','expired','closed');
      END IF;
    END$$;

    CREATE TABLE IF NOT EXISTS wells (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      owner_id TEXT NOT NULL,
      title VARCHAR(50) NOT NULL,
      description VARCHAR(1000) NOT NULL DEFAULT '',
      location VARCHAR(100) NOT NULL,
      target_amount INTEGER NOT NULL CHECK (target_amount > 0),
      current_amount BIGINT NOT NULL DEFAULT 0 CHECK (current_amount >= 0),
      expires_at TIMESTAMPTZ NOT NULL,
      payout_token TEXT NOT NULL,
      status well_status NOT NULL DEFAULT 'open',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );

    -- one open well per owner, one open well per location
    CREATE UNIQUE INDEX IF NOT EXISTS uq_wells_open_owner
      ON wells(owner_id) WHERE status = 'open';
    CREATE UNIQUE INDEX IF NOT EXISTS uq_wells_open_location
      ON wells(location) WHERE status = 'open';
    CREATE INDEX IF NOT EXISTS idx_wells_open_expiry
      ON wells(expires_at) WHERE status = 'open';
    """
    )


def downgrade() -> None:
    op.execute(
        """
    DROP TABLE IF EXISTS wells;
    DROP TYPE IF EXISTS well_status;
    """
    )
