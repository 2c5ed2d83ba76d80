from psycopg2 import errors as pg_errors

from wishingwell.models.records import Message
from wishingwell.utils.db import get_db_connection

MESSAGE_COLS = ["id", "campaign_id", "author_id", "text", "donation_id", "created_at"]


def insert_message(m: Message) -> Message:
    """Idempotent per donation: a second insert for the same donation returns the first row."""
    sql = f"""
    INSERT INTO messages (id, campaign_id, author_id, text, donation_id)
    VALUES (%s, %s, %s, %s, %s)
    RETURNING {', '.join(MESSAGE_COLS)}
    """
    try:
        with get_db_connection() as conn, conn.cursor() as cur:
            cur.execute(sql, (m.id, m.campaign_id, m.author_id, m.text, m.donation_id))
            row = cur.fetchone()
            conn.commit()
            return Message(**dict(zip(MESSAGE_COLS, row)))
    except pg_errors.UniqueViolation:
        existing = get_message_for_donation(m.donation_id)
        if existing is None:
            raise
        return existing


def get_message_for_donation(donation_id: str | None) -> Message | None:
    if not donation_id:
        return None
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"SELECT {', '.join(MESSAGE_COLS)} FROM messages WHERE donation_id = %s",
            (donation_id,),
        )
        row = cur.fetchone()
        return Message(**dict(zip(MESSAGE_COLS, row))) if row else None


def select_messages_by_well(well_id: str) -> list[Message]:
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute(
            f"""
            SELECT {', '.join(MESSAGE_COLS)}
            FROM messages
            WHERE campaign_id = %s
            ORDER BY created_at DESC
            """,
            (well_id,),
        )
        return [Message(**dict(zip(MESSAGE_COLS, r))) for r in cur.fetchall()]
