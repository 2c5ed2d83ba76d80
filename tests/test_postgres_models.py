"""
SQL layer checks against a mocked psycopg2 connection.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from psycopg2 import errors as pg_errors

from wishingwell.errors import CampaignNotFound, DuplicateCampaign, DuplicateCharge, DuplicateLocation
from wishingwell.models import campaign as well_sql
from wishingwell.models import donation as donation_sql
from wishingwell.models.records import Campaign, Donation, OPEN
from wishingwell.tasks import enqueue_message_retry

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _fake_connection(monkeypatch, module):
    conn = MagicMock()
    conn.__enter__.return_value = conn
    cur = conn.cursor.return_value.__enter__.return_value
    monkeypatch.setattr(module, "get_db_connection", lambda: conn)
    return conn, cur


def _donation(**kw):
    fields = dict(id="d1", campaign_id="w1", donor_id="u1", amount=250, charge_id="ch_1")
    fields.update(kw)
    return Donation(**fields)


class TestAppendDonation:
    def test_locks_row_then_increments(self, monkeypatch):
        conn, cur = _fake_connection(monkeypatch, donation_sql)
        cur.fetchone.side_effect = [
            ("open",),
            ("d1", "w1", "u1", 250, "ch_1", "usd", NOW),
            (1250,),
        ]

        result = donation_sql.append_donation_and_increment("w1", _donation())

        statements = [c.args[0] for c in cur.execute.call_args_list]
        assert "FOR UPDATE" in statements[0]
        assert "INSERT INTO donations" in statements[1]
        assert "current_amount = current_amount + %s" in statements[2]
        assert cur.execute.call_args_list[2].args[1] == (250, "w1")
        conn.commit.assert_called_once()
        assert result.new_total == 1250
        assert result.status_at_commit == OPEN
        assert result.donation.charge_id == "ch_1"

    def test_missing_well(self, monkeypatch):
        conn, cur = _fake_connection(monkeypatch, donation_sql)
        cur.fetchone.return_value = None

        with pytest.raises(CampaignNotFound):
            donation_sql.append_donation_and_increment("nope", _donation())
        conn.commit.assert_not_called()

    def test_duplicate_charge(self, monkeypatch):
        conn, cur = _fake_connection(monkeypatch, donation_sql)
        cur.fetchone.return_value = ("open",)
        cur.execute.side_effect = [None, pg_errors.UniqueViolation("charge_id")]

        with pytest.raises(DuplicateCharge):
            donation_sql.append_donation_and_increment("w1", _donation())
        conn.commit.assert_not_called()


class TestInsertWell:
    def _campaign(self):
        return Campaign(
            id="w1",
            owner_id="u1",
            title="Village well",
            description="",
            location="1.0,2.0",
            target_amount=1000,
            expires_at=NOW + timedelta(days=7),
            payout_token="acct_1",
        )

    def test_owner_conflict(self, monkeypatch):
        _, cur = _fake_connection(monkeypatch, well_sql)
        cur.execute.side_effect = pg_errors.UniqueViolation("dup")
        monkeypatch.setattr(well_sql, "constraint_name", lambda e: "uq_wells_open_owner")

        with pytest.raises(DuplicateCampaign):
            well_sql.insert_well(self._campaign())

    def test_location_conflict(self, monkeypatch):
        _, cur = _fake_connection(monkeypatch, well_sql)
        cur.execute.side_effect = pg_errors.UniqueViolation("dup")
        monkeypatch.setattr(well_sql, "constraint_name", lambda e: "uq_wells_open_location")

        with pytest.raises(DuplicateLocation):
            well_sql.insert_well(self._campaign())


def test_expire_wells_returns_rowcount(monkeypatch):
    conn, cur = _fake_connection(monkeypatch, well_sql)
    cur.rowcount = 3

    assert well_sql.expire_wells(NOW) == 3
    sql, params = cur.execute.call_args.args
    assert "expires_at <= %s" in sql
    assert params[-1] == NOW
    conn.commit.assert_called_once()


def test_close_well_not_open(monkeypatch):
    _, cur = _fake_connection(monkeypatch, well_sql)
    cur.fetchone.return_value = None
    assert well_sql.close_well("w1") is None


def test_enqueue_disabled():
    assert enqueue_message_retry("task-1", use_queue=False) is False
