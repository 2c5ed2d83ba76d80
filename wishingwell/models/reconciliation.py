from typing import Any

from psycopg2.extras import Json

from wishingwell.models.records import ReconciliationTask
from wishingwell.utils.db import get_db_connection

TASK_COLS = [
    "id",
    "kind",
    "campaign_id",
    "donor_id",
    "amount",
    "charge_id",
    "donation_id",
    "payload",
    "status",
    "attempts",
    "note",
    "created_at",
    "updated_at",
]
_SELECT = f"SELECT {', '.join(TASK_COLS)} FROM reconciliation_tasks"


def _to_task(row: tuple[Any, ...] | None) -> ReconciliationTask | None:
    if not row:
        return None
    return ReconciliationTask(**dict(zip(TASK_COLS, row)))


def insert_task(t: ReconciliationTask) -> ReconciliationTask:
    sql = f"""
    INSERT INTO reconciliation_tasks
        (id, kind, campaign_id, donor_id, amount, charge_id, donation_id, payload, status, attempts)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING {', '.join(TASK_COLS)}
    """
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            sql,
            (
                t.id,
                t.kind,
                t.campaign_id,
                t.donor_id,
                t.amount,
                t.charge_id,
                t.donation_id,
                Json(t.payload or {}),
                t.status,
                t.attempts,
            ),
        )
        row = cur.fetchone()
        conn.commit()
        return _to_task(row)


def get_task(task_id: str) -> ReconciliationTask | None:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(f"{_SELECT} WHERE id = %s", (task_id,))
        return _to_task(cur.fetchone())


def list_tasks(status: str | None = None) -> list[ReconciliationTask]:
    with get_db_connection() as conn, conn.cursor() as cur:
        if status:
            cur.execute(f"{_SELECT} WHERE status = %s ORDER BY created_at", (status,))
        else:
            cur.execute(f"{_SELECT} ORDER BY created_at")
        return [_to_task(r) for r in cur.fetchall()]


def update_task(
    task_id: str, *, status: str, attempts: int, note: str | None = None
) -> ReconciliationTask | None:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"""
            UPDATE reconciliation_tasks
               SET status = %s, attempts = %s, note = COALESCE(%s, note), updated_at = now()
             WHERE id = %s
            RETURNING {', '.join(TASK_COLS)}
            """,
            (status, attempts, note, task_id),
        )
        row = cur.fetchone()
        conn.commit()
        return _to_task(row)
