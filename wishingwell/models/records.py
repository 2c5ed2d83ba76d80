from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

OPEN = "open"
EXPIRED = "expired"
CLOSED = "closed"
CAMPAIGN_STATUSES = (OPEN, EXPIRED, CLOSED)

LEDGER_WRITE = "ledger_write"
MESSAGE_ATTACH = "message_attach"
GATEWAY_TIMEOUT = "gateway_timeout"

PENDING = "pending"
RESOLVED = "resolved"


def _iso(v):
    return v.isoformat() if isinstance(v, datetime) else v


@dataclass
class Campaign:
    id: str
    owner_id: str
    title: str
    description: str
    location: str
    target_amount: int
    expires_at: datetime
    payout_token: str
    current_amount: int = 0
    status: str = OPEN
    created_at: Optional[datetime] = None

    def is_open(self, now: datetime) -> bool:
        return self.status == OPEN and self.expires_at > now

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["expires_at"] = _iso(self.expires_at)
        d["created_at"] = _iso(self.created_at)
        # payout account ids stay server side
        d.pop("payout_token", None)
        return d


@dataclass(frozen=True)
class Donation:
    id: str
    campaign_id: str
    donor_id: str
    amount: int
    charge_id: str
    currency: str = "usd"
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["created_at"] = _iso(self.created_at)
        return d


@dataclass(frozen=True)
class Message:
    id: str
    campaign_id: str
    author_id: str
    text: str
    donation_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["created_at"] = _iso(self.created_at)
        return d


@dataclass(frozen=True)
class AppendResult:
    """Outcome of the atomic append+increment."""

    donation: Donation
    new_total: int
    status_at_commit: str


@dataclass
class ReconciliationTask:
    id: str
    kind: str
    campaign_id: str
    donor_id: str
    amount: int
    charge_id: Optional[str] = None
    donation_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    status: str = PENDING
    attempts: int = 0
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["created_at"] = _iso(self.created_at)
        d["updated_at"] = _iso(self.updated_at)
        return d


@dataclass(frozen=True)
class CampaignDetail:
    """A campaign together with its donations and messages."""

    campaign: Campaign
    donations: List[Donation]
    messages: List[Message]

    def to_dict(self) -> Dict[str, Any]:
        d = self.campaign.to_dict()
        d["donations"] = [x.to_dict() for x in self.donations]
        d["messages"] = [x.to_dict() for x in self.messages]
        return d
