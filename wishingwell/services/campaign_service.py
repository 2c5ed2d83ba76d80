from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from wishingwell.errors import (
    CampaignNotFound,
    CampaignNotOpen,
    ConflictError,
    DuplicateCampaign,
    DuplicateLocation,
)
from wishingwell.models.records import Campaign, CampaignDetail
from wishingwell.utils.validation import (
    FieldError,
    ValidationResult,
    validate_description,
    validate_duration,
    validate_funding_target,
    validate_location,
    validate_title,
)

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CampaignManager:
    """Creates wells, expires them on schedule and lets owners close them."""

    def __init__(self, store, gateway, clock=_utcnow):
        self.store = store
        self.gateway = gateway
        self.clock = clock

    def create_campaign(
        self,
        owner_id: str,
        title: Any,
        description: Any,
        location: Any,
        target_amount: Any,
        duration_days: Any,
        payout_token: str | None = None,
        payout_source_token: str | None = None,
    ) -> Campaign:
        if isinstance(location, str):
            location = location.strip()
        if description is None:
            description = ""

        result = (
            ValidationResult()
            .add(validate_title(title))
            .add(validate_description(description))
            .add(validate_location(location))
            .add(validate_funding_target(target_amount))
            .add(validate_duration(duration_days))
        )
        if not payout_token and not payout_source_token:
            result.add([FieldError("payout_token", "PAYOUT_TOKEN_REQUIRED")])
        result.raise_for_errors()

        now = self.clock()
        self.sweep_expired(now)
        if self.store.find_open_campaign_by_owner(owner_id) is not None:
            raise DuplicateCampaign()
        if self.store.find_open_campaign_by_location(location) is not None:
            raise DuplicateLocation(location=location)

        provisioned = None
        if not payout_token:
            provisioned = self.gateway.create_connected_account()
            self.gateway.attach_external_account(provisioned, payout_source_token)
            payout_token = provisioned

        campaign = Campaign(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            title=title,
            description=description,
            location=location,
            target_amount=target_amount,
            expires_at=now + timedelta(days=duration_days),
            payout_token=payout_token,
        )
        # the store re-checks both uniqueness rules atomically
        try:
            well = self.store.create_campaign(campaign)
        except ConflictError as e:
            if provisioned:
                log.warning(
                    "[wells] %s for owner=%s after provisioning %s, account left unused",
                    e.code,
                    owner_id,
                    provisioned,
                )
            raise
        log.info("[wells] created %s owner=%s expires=%s", well.id, owner_id, well.expires_at)
        return well

    def sweep_expired(self, now: datetime | None = None) -> int:
        n = self.store.expire_campaigns(now or self.clock())
        if n:
            log.info("[sweep] expired %d well(s)", n)
        return n

    def close_campaign(self, owner_id: str, campaign_id: str) -> Campaign:
        well = self.store.get_campaign(campaign_id)
        if well is None or well.owner_id != owner_id:
            raise CampaignNotFound(id=campaign_id)
        closed = self.store.close_campaign(campaign_id)
        if closed is None:
            raise CampaignNotOpen(id=campaign_id, status=well.status)
        log.info("[wells] closed %s by owner", campaign_id)
        return closed

    def get_campaign(self, campaign_id: str) -> CampaignDetail:
        well = self.store.get_campaign(campaign_id)
        if well is None:
            raise CampaignNotFound(id=campaign_id)
        return CampaignDetail(
            campaign=well,
            donations=self.store.list_donations(campaign_id),
            messages=self.store.list_messages(campaign_id),
        )

    def list_campaigns(self) -> list[CampaignDetail]:
        return [
            CampaignDetail(
                campaign=w,
                donations=self.store.list_donations(w.id),
                messages=self.store.list_messages(w.id),
            )
            for w in self.store.list_campaigns()
        ]
