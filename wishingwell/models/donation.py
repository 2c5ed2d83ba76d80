from typing import Any

from psycopg2 import errors as pg_errors

from wishingwell.errors import CampaignNotFound, DuplicateCharge
from wishingwell.models.records import AppendResult, Donation
from wishingwell.utils.db import get_db_connection

DONATION_COLS = [
    "id",
    "campaign_id",
    "donor_id",
    "amount",
    "charge_id",
    "currency",
    "created_at",
]


def _to_donation(row: tuple[Any, ...]) -> Donation:
    return Donation(**dict(zip(DONATION_COLS, row)))


def append_donation_and_increment(well_id: str, d: Donation) -> AppendResult:
    """
    Insert the donation and bump wells.current_amount in one transaction.

    The well row is locked FOR UPDATE first, so concurrent donations to the
    same well queue up here while other wells are untouched.
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("SELECT status FROM wells WHERE id = %s FOR UPDATE", (well_id,))
        row = cur.fetchone()
        if not row:
            raise CampaignNotFound(id=well_id)
        status = row[0]

        try:
            cur.execute(
                f"""
                INSERT INTO donations (id, campaign_id, donor_id, amount, charge_id, currency)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING {', '.join(DONATION_COLS)}
                """,
                (d.id, well_id, d.donor_id, d.amount, d.charge_id, d.currency),
            )
        except pg_errors.UniqueViolation as e:
            raise DuplicateCharge(charge_id=d.charge_id) from e
        donation = _to_donation(cur.fetchone())

        cur.execute(
            """
            UPDATE wells
               SET current_amount = current_amount + %s, updated_at = now()
             WHERE id = %s
            RETURNING current_amount
            """,
            (d.amount, well_id),
        )
        new_total = cur.fetchone()[0]
        conn.commit()
        return AppendResult(donation=donation, new_total=new_total, status_at_commit=status)


def select_donations_by_well(well_id: str) -> list[Donation]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"""
            SELECT {', '.join(DONATION_COLS)}
            FROM donations
            WHERE campaign_id = %s
            ORDER BY created_at DESC
            """,
            (well_id,),
        )
        return [_to_donation(r) for r in cur.fetchall()]
