"""
Background tasks for RQ (Redis Queue).

Run worker: rq worker -u $REDIS_URL default
"""

from __future__ import annotations
import logging

from wishingwell import settings
from wishingwell.models.records import RESOLVED
from wishingwell.utils.cache import REDIS_URL

log = logging.getLogger(__name__)

RETRY_INTERVALS = [10, 60, 300]


def retry_message_attachment(task_id: str) -> str:
    """RQ job: replay a message_attach task. Raising lets RQ schedule the next retry."""
    from wishingwell.services.ledger_store import build_ledger_store
    from wishingwell.services.reconciliation_service import ReconciliationService

    task = ReconciliationService(build_ledger_store()).replay(task_id)
    if task.status != RESOLVED:
        raise RuntimeError(f"message attachment {task_id} still pending: {task.note}")
    return task.note or ""


def enqueue_message_retry(task_id: str, use_queue: bool | None = None) -> bool:
    """
    Enqueue retry_message_attachment for background processing.
    Returns False when no queue is configured or reachable; the task then stays
    pending for scripts/reconcile.py.
    """
    use_queue = settings.USE_TASK_QUEUE if use_queue is None else use_queue
    if not use_queue:
        return False

    try:
        from redis import Redis
        from rq import Queue, Retry

        conn = Redis.from_url(REDIS_URL, decode_responses=False)
        q = Queue("default", connection=conn)
        q.enqueue(
            retry_message_attachment,
            task_id,
            job_timeout="2m",
            retry=Retry(max=len(RETRY_INTERVALS), interval=RETRY_INTERVALS),
        )
        return True
    except Exception as e:
        log.warning("[tasks] enqueue of %s failed (%s), left for reconcile sweep", task_id, e)
        return False
