from datetime import datetime
from typing import Any

from psycopg2 import errors as pg_errors

from wishingwell.errors import DuplicateCampaign, DuplicateLocation
from wishingwell.models.records import Campaign, OPEN, EXPIRED, CLOSED
from wishingwell.utils.db import get_db_connection, constraint_name

WELL_COLS = [
    "id",
    "owner_id",
    "title",
    "description",
    "location",
    "target_amount",
    "expires_at",
    "payout_token",
    "current_amount",
    "status",
    "created_at",
]
_SELECT = f"SELECT {', '.join(WELL_COLS)} FROM wells"
_RETURNING = f"RETURNING {', '.join(WELL_COLS)}"


def _to_campaign(row: tuple[Any, ...] | None) -> Campaign | None:
    if not row:
        return None
    return Campaign(**dict(zip(WELL_COLS, row)))


def insert_well(c: Campaign) -> Campaign:
    sql = f"""
    INSERT INTO wells (id, owner_id, title, description, location, target_amount,
                       expires_at, payout_token, current_amount, status)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 0, %s)
    {_RETURNING}
    """
    try:
        with get_db_connection() as conn, conn.cursor() as cur:
            cur.execute(
                sql,
                (
                    c.id,
                    c.owner_id,
                    c.title,
                    c.description,
                    c.location,
                    c.target_amount,
                    c.expires_at,
                    c.payout_token,
                    OPEN,
                ),
            )
            row = cur.fetchone()
            conn.commit()
            return _to_campaign(row)
    except pg_errors.UniqueViolation as e:
        # partial unique indexes from migration 0001_wells
        if constraint_name(e) == "uq_wells_open_location":
            raise DuplicateLocation(location=c.location) from e
        raise DuplicateCampaign() from e


def get_well(well_id: str) -> Campaign | None:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} WHERE id = %s", (well_id,))
        return _to_campaign(cur.fetchone())


def list_wells() -> list[Campaign]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} ORDER BY created_at DESC")
        return [_to_campaign(r) for r in cur.fetchall()]


def find_open_well_by_owner(owner_id: str) -> Campaign | None:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"{_SELECT} WHERE owner_id = %s AND status = %s LIMIT 1", (owner_id, OPEN)
        )
        return _to_campaign(cur.fetchone())


def find_open_well_by_location(location: str) -> Campaign | None:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"{_SELECT} WHERE location = %s AND status = %s LIMIT 1", (location, OPEN)
        )
        return _to_campaign(cur.fetchone())


def expire_wells(now: datetime) -> int:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            """
            UPDATE wells
               SET status = %s, updated_at = now()
             WHERE status = %s AND expires_at <= %s
            """,
            (EXPIRED, OPEN, now),
        )
        conn.commit()
        return cur.rowcount


def close_well(well_id: str) -> Campaign | None:
    """Open -> closed. Returns None when the well was not open."""
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"""
            UPDATE wells
               SET status = %s, updated_at = now()
             WHERE id = %s AND status = %s
            {_RETURNING}
            """,
            (CLOSED, well_id, OPEN),
        )
        row = cur.fetchone()
        conn.commit()
        return _to_campaign(row)
