"""
Reconciliation tasks: side effects that a completed charge still owes the ledger.

* ``ledger_write``    the charge succeeded but the donation row was not written
* ``message_attach``  the donation is recorded but its message is not
* ``gateway_timeout`` the gateway timed out, so whether money moved is unknown
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from wishingwell.errors import DuplicateCharge, ReconciliationTaskNotFound
from wishingwell.models.records import (
    Donation,
    Message,
    ReconciliationTask,
    GATEWAY_TIMEOUT,
    LEDGER_WRITE,
    MESSAGE_ATTACH,
    PENDING,
    RESOLVED,
)
from wishingwell.utils.metrics import RECONCILIATION_TASKS

log = logging.getLogger(__name__)


class ReconciliationService:
    def __init__(self, store):
        self.store = store

    def record(
        self,
        kind: str,
        *,
        campaign_id: str,
        donor_id: str,
        amount: int,
        charge_id: str | None = None,
        donation_id: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> ReconciliationTask:
        task = self.store.create_reconciliation_task(
            ReconciliationTask(
                id=str(uuid.uuid4()),
                kind=kind,
                campaign_id=campaign_id,
                donor_id=donor_id,
                amount=amount,
                charge_id=charge_id,
                donation_id=donation_id,
                payload=payload or {},
            )
        )
        RECONCILIATION_TASKS.labels(kind=kind).inc()
        log.warning(
            "[reconcile] recorded %s task=%s well=%s charge=%s amount=%s",
            kind,
            task.id,
            campaign_id,
            charge_id,
            amount,
        )
        return task

    def pending(self) -> list[ReconciliationTask]:
        return self.store.list_reconciliation_tasks(PENDING)

    def get(self, task_id: str) -> ReconciliationTask:
        task = self.store.get_reconciliation_task(task_id)
        if task is None:
            raise ReconciliationTaskNotFound(id=task_id)
        return task

    def resolve(self, task_id: str, note: str) -> ReconciliationTask:
        task = self.get(task_id)
        return self.store.update_reconciliation_task(
            task.id, status=RESOLVED, attempts=task.attempts, note=note
        )

    def replay(self, task_id: str) -> ReconciliationTask:
        """
        Re-run the missing side effect. Safe to call repeatedly: donations are
        unique per charge id and messages unique per donation.
        """
        task = self.get(task_id)
        if task.status == RESOLVED:
            return task
        if task.kind == GATEWAY_TIMEOUT:
            # needs a human to look the charge up with the gateway
            return task

        attempts = task.attempts + 1
        try:
            if task.kind == LEDGER_WRITE:
                note = self._replay_ledger_write(task)
            elif task.kind == MESSAGE_ATTACH:
                note = self._replay_message(task)
            else:
                raise ValueError(f"unknown reconciliation kind {task.kind!r}")
        except Exception as e:
            log.error("[reconcile] replay of %s failed: %s", task.id, e)
            return self.store.update_reconciliation_task(
                task.id, status=PENDING, attempts=attempts, note=f"replay failed: {e}"
            )
        log.info("[reconcile] %s resolved: %s", task.id, note)
        return self.store.update_reconciliation_task(
            task.id, status=RESOLVED, attempts=attempts, note=note
        )

    def _replay_ledger_write(self, task: ReconciliationTask) -> str:
        donation = Donation(
            id=task.donation_id or str(uuid.uuid4()),
            campaign_id=task.campaign_id,
            donor_id=task.donor_id,
            amount=task.amount,
            charge_id=task.charge_id,
            currency=task.payload.get("currency", "usd"),
        )
        try:
            res = self.store.append_donation_and_increment(task.campaign_id, donation)
        except DuplicateCharge:
            return f"charge {task.charge_id} already in ledger"
        text = (task.payload.get("message") or "").strip()
        if text:
            self.store.create_message(
                Message(
                    id=str(uuid.uuid4()),
                    campaign_id=task.campaign_id,
                    author_id=task.donor_id,
                    text=text,
                    donation_id=res.donation.id,
                )
            )
        return f"donation {res.donation.id} recorded, total {res.new_total}"

    def _replay_message(self, task: ReconciliationTask) -> str:
        msg = self.store.create_message(
            Message(
                id=str(uuid.uuid4()),
                campaign_id=task.campaign_id,
                author_id=task.donor_id,
                text=task.payload["message"],
                donation_id=task.donation_id,
            )
        )
        return f"message {msg.id} attached"
