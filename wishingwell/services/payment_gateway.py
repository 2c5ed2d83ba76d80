"""
Payment gateway clients.

``StripeGateway`` talks to Stripe and translates its exceptions into the
``wishingwell.errors`` gateway taxonomy. ``DevGateway`` is used when no
STRIPE_SECRET_KEY is configured: it fabricates ids so the whole flow can run
locally.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import stripe

from wishingwell import settings
from wishingwell.errors import (
    CardDeclined,
    GatewayTimeout,
    GatewayUnavailable,
    InvalidSource,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChargeResult:
    charge_id: str
    status: str


def _translate(e: Exception) -> Exception:
    if isinstance(e, stripe.CardError):
        return CardDeclined(decline_code=getattr(e, "code", None))
    if isinstance(e, stripe.InvalidRequestError):
        return InvalidSource(param=getattr(e, "param", None))
    if isinstance(e, stripe.APIConnectionError):
        # the request may have reached Stripe; outcome unknown
        return GatewayTimeout()
    return GatewayUnavailable()


class StripeGateway:
    def __init__(
        self,
        api_key: str,
        currency: str = settings.CURRENCY,
        country: str = settings.STRIPE_ACCOUNT_COUNTRY,
    ):
        stripe.api_key = api_key
        # a retried charge after a timeout could double charge
        stripe.max_network_retries = 0
        self.currency = currency
        self.country = country

    def create_customer(self, email: str | None, source_token: str) -> str:
        try:
            customer = stripe.Customer.create(email=email, source=source_token)
        except stripe.StripeError as e:
            raise _translate(e) from e
        return customer.id

    def charge(
        self,
        customer_id: str,
        amount_minor: int,
        destination_account: str,
        idempotency_key: str | None = None,
    ) -> ChargeResult:
        try:
            ch = stripe.Charge.create(
                amount=amount_minor,
                currency=self.currency,
                customer=customer_id,
                description="Wishing well donation",
                transfer_data={"destination": destination_account},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            raise _translate(e) from e
        if ch.status == "failed":
            raise CardDeclined(charge_id=ch.id)
        return ChargeResult(charge_id=ch.id, status=ch.status)

    def create_connected_account(self) -> str:
        try:
            acct = stripe.Account.create(country=self.country, type="custom")
        except stripe.StripeError as e:
            raise _translate(e) from e
        return acct.id

    def attach_external_account(self, account_id: str, source_token: str) -> str:
        try:
            ext = stripe.Account.create_external_account(
                account_id, external_account=source_token
            )
        except stripe.StripeError as e:
            raise _translate(e) from e
        return ext.id


class DevGateway:
    """
    Stand-in used without Stripe credentials.

    ``fail_with`` makes every subsequent call raise that error, and ``on_charge``
    runs right before a charge is approved.
    """

    def __init__(self):
        self.fail_with: Exception | None = None
        self.on_charge = None
        self.charges: list[dict] = []

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def create_customer(self, email: str | None, source_token: str) -> str:
        self._check()
        if not source_token:
            raise InvalidSource(param="source")
        return f"cus_{uuid.uuid4().hex[:14]}"

    def charge(
        self,
        customer_id: str,
        amount_minor: int,
        destination_account: str,
        idempotency_key: str | None = None,
    ) -> ChargeResult:
        self._check()
        if self.on_charge is not None:
            self.on_charge()
        charge_id = f"ch_{uuid.uuid4().hex[:24]}"
        self.charges.append(
            {
                "id": charge_id,
                "customer": customer_id,
                "amount": amount_minor,
                "destination": destination_account,
                "idempotency_key": idempotency_key,
            }
        )
        log.info("[gateway][dev] charge %s amount=%s", charge_id, amount_minor)
        return ChargeResult(charge_id=charge_id, status="succeeded")

    def create_connected_account(self) -> str:
        self._check()
        return f"acct_{uuid.uuid4().hex[:16]}"

    def attach_external_account(self, account_id: str, source_token: str) -> str:
        self._check()
        if not source_token:
            raise InvalidSource(param="external_account")
        return f"ba_{uuid.uuid4().hex[:16]}"


def build_payment_gateway(api_key: str | None = None):
    key = settings.STRIPE_SECRET if api_key is None else api_key
    if not key:
        log.warning("[gateway] STRIPE_SECRET_KEY not set, using dev gateway")
        return DevGateway()
    return StripeGateway(key)
