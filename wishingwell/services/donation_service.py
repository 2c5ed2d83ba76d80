"""
Donation pipeline.

An attempt moves through

    requested -> gateway_authorized -> recorded -> (message_attached) -> complete

and can only be rejected before it is recorded. The gateway charge is the
one step that cannot be undone, so everything after it either succeeds or
leaves a reconciliation task behind; the caller always gets a receipt once
money has moved.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from wishingwell import settings
from wishingwell.errors import (
    CampaignNotFound,
    CampaignNotOpen,
    GatewayTimeout,
    NonPositiveAmount,
    NotAuthenticatedError,
    WellsError,
)
from wishingwell.models.records import (
    Campaign,
    Donation,
    Message,
    GATEWAY_TIMEOUT,
    LEDGER_WRITE,
    MESSAGE_ATTACH,
    OPEN,
)
from wishingwell.services.reconciliation_service import ReconciliationService
from wishingwell.utils.metrics import DONATED_MINOR_UNITS, DONATIONS
from wishingwell.utils.validation import ValidationResult, validate_message

log = logging.getLogger(__name__)

REQUESTED = "requested"
GATEWAY_AUTHORIZED = "gateway_authorized"
RECORDED = "recorded"
MESSAGE_ATTACHED = "message_attached"
COMPLETE = "complete"
REJECTED = "rejected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DonationAttempt:
    id: str
    campaign_id: str
    donor_id: str | None
    amount: Any
    state: str = REQUESTED
    history: List[str] = field(default_factory=lambda: [REQUESTED])
    reason: Optional[str] = None
    charge_id: Optional[str] = None

    def advance(self, state: str) -> None:
        self.state = state
        self.history.append(state)

    def reject(self, reason: str) -> None:
        self.reason = reason
        self.advance(REJECTED)


@dataclass(frozen=True)
class DonationReceipt:
    campaign_id: str
    amount: int
    charge_id: str
    donation_id: Optional[str]
    new_campaign_total: Optional[int]
    message_id: Optional[str] = None
    grace_applied: bool = False
    reconciliation_required: bool = False
    reconciliation_task_id: Optional[str] = None
    state: str = COMPLETE

    def to_dict(self) -> Dict[str, Any]:
        return {"success": True, **asdict(self)}


class DonationPipeline:
    def __init__(
        self,
        store,
        gateway,
        reconciliation: ReconciliationService | None = None,
        *,
        message_threshold: int | None = None,
        currency: str = settings.CURRENCY,
        clock=_utcnow,
        enqueue_retry: Callable[[str], bool] | None = None,
    ):
        self.store = store
        self.gateway = gateway
        self.reconciliation = reconciliation or ReconciliationService(store)
        self.message_threshold = (
            settings.MESSAGE_THRESHOLD_CENTS if message_threshold is None else message_threshold
        )
        self.currency = currency
        self.clock = clock
        if enqueue_retry is None:
            from wishingwell.tasks import enqueue_message_retry as enqueue_retry
        self.enqueue_retry = enqueue_retry
        self._listeners: list[Callable[[DonationReceipt], None]] = []

    def add_listener(self, fn: Callable[[DonationReceipt], None]) -> None:
        """fn(receipt) runs after a donation is recorded; its errors are logged only."""
        self._listeners.append(fn)

    def donate(
        self,
        campaign_id: str,
        donor_id: str | None,
        amount_minor: Any,
        payment_source: str,
        message: str | None = None,
        donor_email: str | None = None,
    ) -> DonationReceipt:
        attempt = DonationAttempt(
            id=str(uuid.uuid4()),
            campaign_id=campaign_id,
            donor_id=donor_id,
            amount=amount_minor,
        )
        try:
            well = self._check_request(attempt, message)
            charge_id = self._authorize(attempt, well, payment_source, donor_email)
        except WellsError as e:
            attempt.reject(e.code)
            DONATIONS.labels(outcome="rejected").inc()
            log.info("[donate] rejected well=%s donor=%s: %s", campaign_id, donor_id, e.code)
            raise

        text = (message or "").strip()
        if attempt.amount < self.message_threshold:
            text = ""
        return self._settle(attempt, well, charge_id, text)

    # --- before the charge: anything may reject ---

    def _check_request(self, attempt: DonationAttempt, message: str | None) -> Campaign:
        if not attempt.donor_id:
            raise NotAuthenticatedError()

        well = self.store.get_campaign(attempt.campaign_id)
        if well is None:
            raise CampaignNotFound(id=attempt.campaign_id)
        if not well.is_open(self.clock()):
            raise CampaignNotOpen(id=well.id, status=well.status)

        amount = attempt.amount
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise NonPositiveAmount()

        if amount >= self.message_threshold:
            ValidationResult().add(validate_message(message)).raise_for_errors()
        return well

    def _authorize(
        self,
        attempt: DonationAttempt,
        well: Campaign,
        payment_source: str,
        donor_email: str | None,
    ) -> str:
        # no lock is held here; the gateway is the slow part
        customer_id = self.gateway.create_customer(donor_email, payment_source)
        try:
            charge = self.gateway.charge(
                customer_id,
                attempt.amount,
                well.payout_token,
                idempotency_key=attempt.id,
            )
        except GatewayTimeout as e:
            task_id = self._record_timeout(attempt)
            e.details["reconciliation_task_id"] = task_id
            raise
        attempt.charge_id = charge.charge_id
        attempt.advance(GATEWAY_AUTHORIZED)
        return charge.charge_id

    def _record_timeout(self, attempt: DonationAttempt) -> str | None:
        try:
            task = self.reconciliation.record(
                GATEWAY_TIMEOUT,
                campaign_id=attempt.campaign_id,
                donor_id=attempt.donor_id,
                amount=attempt.amount,
                payload={"idempotency_key": attempt.id, "currency": self.currency},
            )
            return task.id
        except Exception:
            log.critical(
                "[donate] gateway timeout NOT RECORDED idempotency_key=%s well=%s donor=%s amount=%s",
                attempt.id,
                attempt.campaign_id,
                attempt.donor_id,
                attempt.amount,
                exc_info=True,
            )
            return None

    # --- after the charge: never raise ---

    def _settle(
        self, attempt: DonationAttempt, well: Campaign, charge_id: str, text: str
    ) -> DonationReceipt:
        donation = Donation(
            id=str(uuid.uuid4()),
            campaign_id=well.id,
            donor_id=attempt.donor_id,
            amount=attempt.amount,
            charge_id=charge_id,
            currency=self.currency,
        )
        try:
            res = self.store.append_donation_and_increment(well.id, donation)
        except Exception as e:
            return self._ledger_write_failed(attempt, donation, text, e)

        attempt.advance(RECORDED)
        DONATED_MINOR_UNITS.inc(attempt.amount)
        grace = res.status_at_commit != OPEN or well.expires_at <= self.clock()
        if grace:
            log.info("[donate] %s recorded for well %s after it closed", charge_id, well.id)

        message_id, task_id = None, None
        if text:
            message_id, task_id = self._attach_message(attempt, res.donation, text)
        if message_id:
            attempt.advance(MESSAGE_ATTACHED)
        attempt.advance(COMPLETE)
        DONATIONS.labels(outcome="reconciliation" if task_id else "complete").inc()

        receipt = DonationReceipt(
            campaign_id=well.id,
            amount=attempt.amount,
            charge_id=charge_id,
            donation_id=res.donation.id,
            new_campaign_total=res.new_total,
            message_id=message_id,
            grace_applied=grace,
            reconciliation_required=task_id is not None,
            reconciliation_task_id=task_id,
            state=attempt.state,
        )
        self._notify(receipt)
        return receipt

    def _attach_message(
        self, attempt: DonationAttempt, donation: Donation, text: str
    ) -> tuple[str | None, str | None]:
        try:
            msg = self.store.create_message(
                Message(
                    id=str(uuid.uuid4()),
                    campaign_id=donation.campaign_id,
                    author_id=donation.donor_id,
                    text=text,
                    donation_id=donation.id,
                )
            )
            return msg.id, None
        except Exception as e:
            log.error("[donate] message for donation %s failed: %s", donation.id, e)

        try:
            task = self.reconciliation.record(
                MESSAGE_ATTACH,
                campaign_id=donation.campaign_id,
                donor_id=donation.donor_id,
                amount=donation.amount,
                charge_id=donation.charge_id,
                donation_id=donation.id,
                payload={"message": text},
            )
        except Exception:
            log.critical(
                "[donate] message for donation %s LOST: %r", donation.id, text, exc_info=True
            )
            return None, None
        try:
            self.enqueue_retry(task.id)
        except Exception as e:
            log.warning("[donate] retry enqueue for task %s failed: %s", task.id, e)
        return None, task.id

    def _ledger_write_failed(
        self, attempt: DonationAttempt, donation: Donation, text: str, err: Exception
    ) -> DonationReceipt:
        log.error(
            "[donate] ledger write failed after charge %s well=%s donor=%s amount=%s: %s",
            donation.charge_id,
            donation.campaign_id,
            donation.donor_id,
            donation.amount,
            err,
        )
        task_id = None
        try:
            task = self.reconciliation.record(
                LEDGER_WRITE,
                campaign_id=donation.campaign_id,
                donor_id=donation.donor_id,
                amount=donation.amount,
                charge_id=donation.charge_id,
                donation_id=donation.id,
                payload={
                    "message": text,
                    "currency": donation.currency,
                    "idempotency_key": attempt.id,
                    "error": str(err),
                },
            )
            task_id = task.id
        except Exception:
            log.critical(
                "[donate] RECONCILIATION NOT RECORDED charge=%s well=%s donor=%s amount=%s message=%r",
                donation.charge_id,
                donation.campaign_id,
                donation.donor_id,
                donation.amount,
                text,
                exc_info=True,
            )
        DONATIONS.labels(outcome="reconciliation").inc()
        return DonationReceipt(
            campaign_id=donation.campaign_id,
            amount=donation.amount,
            charge_id=donation.charge_id,
            donation_id=None,
            new_campaign_total=None,
            reconciliation_required=True,
            reconciliation_task_id=task_id,
            state=attempt.state,
        )

    def _notify(self, receipt: DonationReceipt) -> None:
        for fn in self._listeners:
            try:
                fn(receipt)
            except Exception as e:
                log.warning("[donate] listener %r failed: %s", fn, e)
