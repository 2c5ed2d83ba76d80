"""
Shared fixtures: an in-memory ledger, a scriptable dev gateway and a frozen clock.
Nothing here touches Postgres, Redis or Stripe.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

os.environ["LEDGER_BACKEND"] = "memory"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["USE_TASK_QUEUE"] = "0"

from wishingwell.services.campaign_service import CampaignManager  # noqa: E402
from wishingwell.services.donation_service import DonationPipeline  # noqa: E402
from wishingwell.services.ledger_store import MemoryLedgerStore  # noqa: E402
from wishingwell.services.payment_gateway import DevGateway  # noqa: E402
from wishingwell.services.reconciliation_service import ReconciliationService  # noqa: E402


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeRedis:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return MemoryLedgerStore(clock=clock)


@pytest.fixture
def gateway():
    return DevGateway()


@pytest.fixture
def enqueued():
    """Task ids handed to the background queue."""
    return []


@pytest.fixture
def reconciliation(store):
    return ReconciliationService(store)


@pytest.fixture
def manager(store, gateway, clock):
    return CampaignManager(store, gateway, clock=clock)


@pytest.fixture
def pipeline(store, gateway, reconciliation, clock, enqueued):
    def _enqueue(task_id):
        enqueued.append(task_id)
        return True

    return DonationPipeline(
        store,
        gateway,
        reconciliation,
        message_threshold=500,
        clock=clock,
        enqueue_retry=_enqueue,
    )


@pytest.fixture
def make_well(manager):
    counter = {"n": 0}

    def _make(owner_id=None, **overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "owner_id": owner_id or f"owner-{n}",
            "title": f"Clean water {n}",
            "description": "A well for the village",
            "location": f"{10 + n}.5,-{20 + n}.25",
            "target_amount": 100_000,
            "duration_days": 7,
            "payout_token": f"acct_test{n}",
        }
        fields.update(overrides)
        return manager.create_campaign(**fields)

    return _make


@pytest.fixture
def fake_redis(monkeypatch):
    from wishingwell.utils import cache

    fake = FakeRedis()
    monkeypatch.setattr(cache, "r", lambda: fake)
    return fake


@pytest.fixture
def app(store, gateway, enqueued, fake_redis):
    from wishingwell import create_app

    def _enqueue(task_id):
        enqueued.append(task_id)
        return True

    app = create_app(
        {
            "TESTING": True,
            "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
            "LEDGER_STORE": store,
            "PAYMENT_GATEWAY": gateway,
            "ENQUEUE_RETRY": _enqueue,
            "MESSAGE_THRESHOLD_CENTS": 500,
        }
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    from flask_jwt_extended import create_access_token

    def _headers(user_id="user-1", email="donor@example.com"):
        with app.app_context():
            token = create_access_token(identity=user_id, additional_claims={"email": email})
        return {"Authorization": f"Bearer {token}"}

    return _headers
