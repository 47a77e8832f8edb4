"""Tests for the per-page stats calculations."""

import pytest

from planmoni_admin.kyc.service import kyc_stats, matches_search, merge_progress
from planmoni_admin.marketing.schemas import SendCampaignRequest
from planmoni_admin.marketing.service import campaign_stats, send_payload
from planmoni_admin.notifications.service import notification_stats
from planmoni_admin.payouts.events import computed_event_stats
from planmoni_admin.payouts.events import matches_search as event_matches
from planmoni_admin.payouts.plans import STATS_FIELDS, map_plan_stats, page_range
from planmoni_admin.payouts.withdrawals import withdrawal_stats
from planmoni_admin.users.service import flatten_profile
from planmoni_admin.users.service import matches_search as user_matches


class TestKyc:
    def test_merge_attaches_progress_and_user(self) -> None:
        records = [{"id": "k1", "user_id": "u1", "profiles": {"email": "a@x.com"}}, {"id": "k2", "user_id": "u2"}]
        progress = [{"user_id": "u1", "overall_completed": True}]
        merged = merge_progress(records, progress)
        assert merged[0]["user"] == {"email": "a@x.com"}
        assert merged[0]["kyc_progress"]["overall_completed"] is True
        assert merged[1]["kyc_progress"] is None
        assert "profiles" not in merged[0]

    def test_stats(self) -> None:
        items = [
            {"approved": True, "kyc_progress": {"overall_completed": True}},
            {"approved": False, "kyc_progress": None},
            {"approved": None},
        ]
        assert kyc_stats(items) == {"total": 3, "approved": 1, "pending": 1, "rejected": 0, "completed": 1}

    def test_search_by_bvn_and_user_email(self) -> None:
        item = {"bvn": "22334455667", "user": {"email": "ada@example.com"}}
        assert matches_search(item, "2233")
        assert matches_search(item, "ADA@")
        assert not matches_search(item, "nobody")


class TestNotifications:
    def test_stats_over_sent_rows(self) -> None:
        rows = [
            {"status": "sent", "total_recipients": 100, "delivered_count": 90, "failed_count": 10},
            {"status": "sent", "total_recipients": 100, "delivered_count": 85, "failed_count": 15},
            {"status": "draft", "total_recipients": 50},
            {"status": "scheduled"},
            {"status": "failed", "failed_count": 3},
        ]
        assert notification_stats(rows) == {
            "total_sent": 2,
            "total_delivered": 175,
            "total_failed": 25,
            "total_pending": 2,
            "delivery_rate": 88,
        }

    def test_no_recipients(self) -> None:
        assert notification_stats([])["delivery_rate"] == 0


class TestCampaigns:
    def test_open_rate_over_delivered(self) -> None:
        campaigns = [
            {"status": "sent", "recipient_count": 200, "delivered_count": 180, "opened_count": 45},
            {"status": "draft", "recipient_count": 999},
        ]
        stats = campaign_stats(campaigns)
        assert stats["total_campaigns"] == 2
        assert stats["total_sent"] == 200
        assert stats["avg_open_rate"] == pytest.approx(25.0)

    def test_nothing_delivered(self) -> None:
        assert campaign_stats([{"status": "sent"}])["avg_open_rate"] == 0

    def test_send_now_payload(self) -> None:
        payload = send_payload("c1", SendCampaignRequest(segment="active_users"))
        assert payload == {"action": "send_campaign", "campaign_id": "c1", "recipient_filters": {"segment": "active_users"}}

    def test_scheduled_payload(self) -> None:
        payload = send_payload("c1", SendCampaignRequest(scheduled_at="2026-11-01T09:00:00Z"))
        assert payload["action"] == "schedule_campaign"
        assert payload["scheduled_at"].startswith("2026-11-01T09:00:00")


class TestPayouts:
    def test_plan_stats_renamed_and_defaulted(self) -> None:
        stats = map_plan_stats({"total": 4, "bi_weekly": "2", "total_locked_balance": 12500.5})
        assert stats["total"] == 4.0
        assert stats["biWeekly"] == 2.0
        assert stats["totalLockedBalance"] == 12500.5
        assert stats["quarterly"] == 0.0
        assert set(stats) == set(STATS_FIELDS.values())

    def test_plan_stats_missing_row(self) -> None:
        assert all(value == 0 for value in map_plan_stats(None).values())

    def test_page_range(self) -> None:
        assert page_range(1, 50) == (0, 49)
        assert page_range(3, 20) == (40, 59)

    def test_event_stats(self) -> None:
        events = [{"status": "completed"}, {"status": "failed"}, {"status": "processing"}, {"status": "completed"}]
        assert computed_event_stats(events) == {"total": 4, "processing": 1, "completed": 2, "failed": 1}

    def test_event_stats_prefers_exact_count(self) -> None:
        assert computed_event_stats([{"status": "completed"}], total=120)["total"] == 120

    def test_event_search_by_plan_and_amount(self) -> None:
        event = {"status": "completed", "amount": 25000, "payout_plan": {"name": "Rent"}, "user": {}}
        assert event_matches(event, "rent")
        assert event_matches(event, "2500")
        assert not event_matches(event, "school")

    def test_withdrawal_amounts_from_completed_only(self) -> None:
        withdrawals = [
            {"status": "completed", "withdrawal_amount": 1000, "fee_amount": 50},
            {"status": "transferred", "withdrawal_amount": 500, "fee_amount": 25},
            {"status": "pending", "withdrawal_amount": 9999, "fee_amount": 99},
            {"status": "processing"},
            {"status": "rejected"},
        ]
        assert withdrawal_stats(withdrawals) == {
            "total": 5,
            "pending": 2,
            "completed": 2,
            "failed": 1,
            "total_amount": 1500.0,
            "total_fees": 75.0,
        }


class TestUsers:
    def test_flatten_profile_with_wallet(self) -> None:
        row = flatten_profile(
            {"id": "u1", "first_name": "Ada", "wallets": [{"balance": 300, "locked_balance": 200}], "is_admin": None}
        )
        assert row["balance"] == 300
        assert row["locked_balance"] == 200
        assert row["is_admin"] is False
        assert row["active_plans"] == 0

    def test_flatten_profile_without_wallet(self) -> None:
        row = flatten_profile({"id": "u1", "wallets": []})
        assert row["balance"] == 0

    def test_search_full_name(self) -> None:
        user = {"first_name": "Ada", "last_name": "Obi", "email": "ada@example.com"}
        assert user_matches(user, "ada obi")
        assert user_matches(user, "EXAMPLE.COM")
        assert not user_matches(user, "bello")
        assert user_matches(user, None)
