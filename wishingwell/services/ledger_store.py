"""
Ledger store backends.

``PostgresLedgerStore`` is the production store and delegates to the SQL in
``wishingwell.models``. ``MemoryLedgerStore`` keeps everything in process and
is what dev mode (``LEDGER_BACKEND=memory``) and the test suite run against.
Both give the same guarantees: the append+increment is atomic per well, and
wells never share a lock.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone

from wishingwell import settings
from wishingwell.errors import (
    CampaignNotFound,
    DuplicateCampaign,
    DuplicateCharge,
    DuplicateLocation,
)
from wishingwell.models import campaign as well_sql
from wishingwell.models import donation as donation_sql
from wishingwell.models import message as message_sql
from wishingwell.models import reconciliation as task_sql
from wishingwell.models.records import (
    AppendResult,
    Campaign,
    Donation,
    Message,
    ReconciliationTask,
    OPEN,
    EXPIRED,
    CLOSED,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostgresLedgerStore:
    def get_campaign(self, campaign_id: str) -> Campaign | None:
        return well_sql.get_well(campaign_id)

    def list_campaigns(self) -> list[Campaign]:
        return well_sql.list_wells()

    def create_campaign(self, campaign: Campaign) -> Campaign:
        return well_sql.insert_well(campaign)

    def find_open_campaign_by_owner(self, owner_id: str) -> Campaign | None:
        return well_sql.find_open_well_by_owner(owner_id)

    def find_open_campaign_by_location(self, location: str) -> Campaign | None:
        return well_sql.find_open_well_by_location(location)

    def expire_campaigns(self, now: datetime) -> int:
        return well_sql.expire_wells(now)

    def close_campaign(self, campaign_id: str) -> Campaign | None:
        return well_sql.close_well(campaign_id)

    def append_donation_and_increment(
        self, campaign_id: str, donation: Donation
    ) -> AppendResult:
        return donation_sql.append_donation_and_increment(campaign_id, donation)

    def list_donations(self, campaign_id: str) -> list[Donation]:
        return donation_sql.select_donations_by_well(campaign_id)

    def create_message(self, message: Message) -> Message:
        return message_sql.insert_message(message)

    def list_messages(self, campaign_id: str) -> list[Message]:
        return message_sql.select_messages_by_well(campaign_id)

    def create_reconciliation_task(self, task: ReconciliationTask) -> ReconciliationTask:
        return task_sql.insert_task(task)

    def get_reconciliation_task(self, task_id: str) -> ReconciliationTask | None:
        return task_sql.get_task(task_id)

    def list_reconciliation_tasks(self, status: str | None = None) -> list[ReconciliationTask]:
        return task_sql.list_tasks(status)

    def update_reconciliation_task(
        self, task_id: str, *, status: str, attempts: int, note: str | None = None
    ) -> ReconciliationTask | None:
        return task_sql.update_task(task_id, status=status, attempts=attempts, note=note)


class MemoryLedgerStore:
    def __init__(self, clock=_utcnow):
        self._clock = clock
        self._campaigns: dict[str, Campaign] = {}
        self._donations: dict[str, list[Donation]] = {}
        self._charges: set[str] = set()
        self._charges_lock = threading.Lock()
        self._messages: dict[str, list[Message]] = defaultdict(list)
        self._message_by_donation: dict[str, Message] = {}
        self._tasks: dict[str, ReconciliationTask] = {}
        # guards the dicts above and campaign status changes; per-well donation
        # lists and totals are guarded by the well's own lock
        self._lock = threading.Lock()
        self._campaign_locks: dict[str, threading.Lock] = {}

    def _campaign_lock(self, campaign_id: str) -> threading.Lock:
        with self._lock:
            lock = self._campaign_locks.get(campaign_id)
            if lock is None:
                lock = self._campaign_locks[campaign_id] = threading.Lock()
            return lock

    # --- campaigns ---

    def get_campaign(self, campaign_id: str) -> Campaign | None:
        with self._lock:
            c = self._campaigns.get(campaign_id)
            return replace(c) if c else None

    def list_campaigns(self) -> list[Campaign]:
        with self._lock:
            rows = [replace(c) for c in self._campaigns.values()]
        return sorted(rows, key=lambda c: c.created_at, reverse=True)

    def create_campaign(self, campaign: Campaign) -> Campaign:
        with self._lock:
            for c in self._campaigns.values():
                if c.status != OPEN:
                    continue
                if c.owner_id == campaign.owner_id:
                    raise DuplicateCampaign()
                if c.location == campaign.location:
                    raise DuplicateLocation(location=campaign.location)
            stored = replace(
                campaign, status=OPEN, current_amount=0, created_at=self._clock()
            )
            self._campaigns[stored.id] = stored
            self._donations[stored.id] = []
            return replace(stored)

    def find_open_campaign_by_owner(self, owner_id: str) -> Campaign | None:
        with self._lock:
            for c in self._campaigns.values():
                if c.status == OPEN and c.owner_id == owner_id:
                    return replace(c)
        return None

    def find_open_campaign_by_location(self, location: str) -> Campaign | None:
        with self._lock:
            for c in self._campaigns.values():
                if c.status == OPEN and c.location == location:
                    return replace(c)
        return None

    def expire_campaigns(self, now: datetime) -> int:
        n = 0
        with self._lock:
            for c in self._campaigns.values():
                if c.status == OPEN and c.expires_at <= now:
                    c.status = EXPIRED
                    n += 1
        return n

    def close_campaign(self, campaign_id: str) -> Campaign | None:
        with self._lock:
            c = self._campaigns.get(campaign_id)
            if c is None or c.status != OPEN:
                return None
            c.status = CLOSED
            return replace(c)

    # --- donations ---

    def append_donation_and_increment(
        self, campaign_id: str, donation: Donation
    ) -> AppendResult:
        with self._lock:
            c = self._campaigns.get(campaign_id)
            donations = self._donations.get(campaign_id)
        if c is None:
            raise CampaignNotFound(id=campaign_id)

        # only this well's lock is held from here on
        with self._campaign_lock(campaign_id):
            with self._charges_lock:
                if donation.charge_id in self._charges:
                    raise DuplicateCharge(charge_id=donation.charge_id)
                self._charges.add(donation.charge_id)
            status = c.status
            stored = replace(donation, campaign_id=campaign_id, created_at=self._clock())
            donations.append(stored)
            c.current_amount += stored.amount
            return AppendResult(
                donation=stored, new_total=c.current_amount, status_at_commit=status
            )

    def list_donations(self, campaign_id: str) -> list[Donation]:
        with self._lock:
            donations = self._donations.get(campaign_id, [])
        return donations[::-1]

    # --- messages ---

    def create_message(self, message: Message) -> Message:
        with self._lock:
            if message.donation_id and message.donation_id in self._message_by_donation:
                return self._message_by_donation[message.donation_id]
            stored = replace(message, created_at=self._clock())
            self._messages[stored.campaign_id].append(stored)
            if stored.donation_id:
                self._message_by_donation[stored.donation_id] = stored
            return stored

    def list_messages(self, campaign_id: str) -> list[Message]:
        with self._lock:
            return list(reversed(self._messages.get(campaign_id, [])))

    # --- reconciliation ---

    def create_reconciliation_task(self, task: ReconciliationTask) -> ReconciliationTask:
        now = self._clock()
        stored = replace(task, created_at=now, updated_at=now)
        with self._lock:
            self._tasks[stored.id] = stored
        return replace(stored)

    def get_reconciliation_task(self, task_id: str) -> ReconciliationTask | None:
        with self._lock:
            t = self._tasks.get(task_id)
            return replace(t) if t else None

    def list_reconciliation_tasks(self, status: str | None = None) -> list[ReconciliationTask]:
        with self._lock:
            rows = [replace(t) for t in self._tasks.values()]
        if status:
            rows = [t for t in rows if t.status == status]
        return sorted(rows, key=lambda t: t.created_at)

    def update_reconciliation_task(
        self, task_id: str, *, status: str, attempts: int, note: str | None = None
    ) -> ReconciliationTask | None:
        with self._lock:
            t = self._tasks.get(task_id)
            if t is None:
                return None
            t.status = status
            t.attempts = attempts
            if note is not None:
                t.note = note
            t.updated_at = self._clock()
            return replace(t)


def build_ledger_store(backend: str | None = None):
    backend = (backend or settings.LEDGER_BACKEND).lower()
    if backend == "memory":
        return MemoryLedgerStore()
    return PostgresLedgerStore()
