from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from wishingwell.errors import (
    CampaignNotFound,
    CampaignNotOpen,
    DuplicateCampaign,
    DuplicateLocation,
    InvalidSource,
    ValidationError,
)
from wishingwell.models.records import CLOSED, EXPIRED, OPEN


class TestCreateCampaign:
    def test_persists_open_well(self, make_well, store, clock):
        well = make_well(owner_id="u1", duration_days=10)

        stored = store.get_campaign(well.id)
        assert stored.status == OPEN
        assert stored.current_amount == 0
        assert stored.owner_id == "u1"
        assert stored.expires_at == clock.now + timedelta(days=10)

    def test_second_open_well_for_owner_is_rejected(self, make_well):
        make_well(owner_id="u1")
        with pytest.raises(DuplicateCampaign):
            make_well(owner_id="u1")

    def test_location_unique_among_open_wells(self, make_well):
        make_well(owner_id="u1", location="40.7128,-74.0060")
        with pytest.raises(DuplicateLocation):
            make_well(owner_id="u2", location="40.7128,-74.0060")

    def test_field_errors_reported_together(self, make_well, store):
        with pytest.raises(ValidationError) as exc:
            make_well(title="no", location="somewhere", duration_days=45)
        fields = {e["field"] for e in exc.value.details["errors"]}
        assert fields == {"title", "location", "duration_days"}
        assert store.list_campaigns() == []

    def test_validation_runs_before_conflict_checks(self, make_well):
        make_well(owner_id="u1")
        with pytest.raises(ValidationError):
            make_well(owner_id="u1", target_amount=0)

    def test_target_above_configured_max(self, make_well):
        with pytest.raises(ValidationError) as exc:
            make_well(target_amount=1_000_001)
        assert exc.value.details["errors"][0]["error"] == "FUNDINGTARGET_INVALID_VALUE"

    def test_payout_required(self, make_well):
        with pytest.raises(ValidationError) as exc:
            make_well(payout_token=None)
        assert exc.value.details["errors"][0]["field"] == "payout_token"

    def test_payout_source_provisions_connected_account(self, make_well):
        well = make_well(payout_token=None, payout_source_token="btok_us")
        assert well.payout_token.startswith("acct_")

    def test_payout_provisioning_failure_creates_nothing(self, make_well, gateway, store):
        gateway.fail_with = InvalidSource(param="external_account")
        with pytest.raises(InvalidSource):
            make_well(payout_token=None, payout_source_token="btok_bad")
        assert store.list_campaigns() == []

    def test_lost_race_logs_provisioned_account(self, make_well, store, monkeypatch, caplog):
        def raced(campaign):
            raise DuplicateLocation(location=campaign.location)

        monkeypatch.setattr(store, "create_campaign", raced)
        with pytest.raises(DuplicateLocation):
            make_well(payout_token=None, payout_source_token="btok_us")

        (record,) = [r for r in caplog.records if "account left unused" in r.getMessage()]
        assert record.levelname == "WARNING"
        assert "acct_" in record.getMessage()

    def test_expired_well_frees_owner_and_location(self, make_well, clock):
        make_well(owner_id="u1", location="1.5,2.5", duration_days=1)
        clock.advance(days=2)
        again = make_well(owner_id="u1", location="1.5,2.5")
        assert again.status == OPEN

    def test_concurrent_creates_for_one_owner(self, make_well):
        def attempt(i):
            try:
                return make_well(owner_id="racer", location=f"{i}.0,{i}.0")
            except DuplicateCampaign:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(8)))
        assert len([r for r in results if r is not None]) == 1


class TestSweepExpired:
    def test_moves_past_due_wells_to_expired(self, make_well, manager, store, clock):
        short = make_well(duration_days=1)
        long = make_well(duration_days=20)
        clock.advance(days=2)

        assert manager.sweep_expired() == 1
        assert store.get_campaign(short.id).status == EXPIRED
        assert store.get_campaign(long.id).status == OPEN

    def test_idempotent(self, make_well, manager, clock):
        make_well(duration_days=1)
        clock.advance(days=1)
        assert manager.sweep_expired() == 1
        assert manager.sweep_expired() == 0

    def test_explicit_now(self, make_well, manager, store, clock):
        well = make_well(duration_days=3)
        assert manager.sweep_expired(clock.now + timedelta(days=3)) == 1
        assert store.get_campaign(well.id).status == EXPIRED


class TestCloseCampaign:
    def test_owner_closes_and_can_start_again(self, make_well, manager):
        well = make_well(owner_id="u1", location="5.5,5.5")
        closed = manager.close_campaign("u1", well.id)
        assert closed.status == CLOSED
        assert make_well(owner_id="u1", location="5.5,5.5").status == OPEN

    def test_other_users_cannot_close(self, make_well, manager):
        well = make_well(owner_id="u1")
        with pytest.raises(CampaignNotFound):
            manager.close_campaign("u2", well.id)

    def test_closing_twice(self, make_well, manager):
        well = make_well(owner_id="u1")
        manager.close_campaign("u1", well.id)
        with pytest.raises(CampaignNotOpen):
            manager.close_campaign("u1", well.id)


def test_get_campaign_includes_donations_and_messages(make_well, manager, pipeline):
    well = make_well()
    pipeline.donate(well.id, "donor", 600, "tok_visa", message="good luck")

    detail = manager.get_campaign(well.id)
    assert detail.campaign.current_amount == 600
    assert len(detail.donations) == 1
    assert detail.messages[0].text == "good luck"
    body = detail.to_dict()
    assert "payout_token" not in body
    assert body["donations"][0]["amount"] == 600


def test_get_unknown_campaign(manager):
    with pytest.raises(CampaignNotFound):
        manager.get_campaign("missing")


def test_list_campaigns(make_well, manager):
    make_well()
    make_well()
    assert len(manager.list_campaigns()) == 2
