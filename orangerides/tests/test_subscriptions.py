"""
Tests for subscription activation.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select, func

from orangerides.core.database import get_db_session, subscriptions as subscriptions_table
from orangerides.core.errors import OwnerNotFoundError, ValidationError
from orangerides.features.notifications import service as notifications
from orangerides.features.owners.service import require_owner
from orangerides.features.subscriptions import service as subscriptions
from orangerides.models.notification import NotificationEventType
from orangerides.models.owner import OwnerStatus
from orangerides.models.plan import PlanKey
from orangerides.models.subscription import SubscriptionStatus


JAN_31 = datetime(2024, 1, 31, 9, 30, tzinfo=timezone.utc)


def _row_count(owner_id):
    with get_db_session() as session:
        return session.execute(
            select(func.count()).select_from(subscriptions_table).where(subscriptions_table.c.owner_id == owner_id)
        ).scalar_one()


def test_activate_creates_subscription_and_activates_owner(make_owner, catalog):
    make_owner("o1", business_name="Ada Rides", status="Pending Approval")
    sub = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_1", catalog, now=JAN_31)

    assert sub.status == SubscriptionStatus.ACTIVE
    assert sub.plan_key == PlanKey.WEEKLY
    assert sub.owner_name == "Ada Rides"
    assert sub.start_date == JAN_31
    assert sub.expiry_date == JAN_31 + timedelta(days=7)
    assert sub.last_payment_reference == "ref_1"

    owner = require_owner("o1")
    assert owner.current_plan == PlanKey.WEEKLY
    assert owner.status == OwnerStatus.ACTIVE


def test_monthly_expiry_is_calendar_aware(make_owner, catalog):
    make_owner("o1")
    sub = subscriptions.activate("o1", PlanKey.MONTHLY, "ref_1", catalog, now=JAN_31)
    assert sub.expiry_date == datetime(2024, 2, 29, 9, 30, tzinfo=timezone.utc)


def test_yearly_expiry(make_owner, catalog):
    make_owner("o1")
    sub = subscriptions.activate("o1", PlanKey.YEARLY, "ref_1", catalog, now=JAN_31)
    assert sub.expiry_date == datetime(2025, 1, 31, 9, 30, tzinfo=timezone.utc)


def test_activate_twice_same_reference_is_idempotent(make_owner, catalog):
    make_owner("o1")
    first = subscriptions.activate("o1", PlanKey.MONTHLY, "ref_1", catalog, now=JAN_31)
    second = subscriptions.activate("o1", PlanKey.MONTHLY, "ref_1", catalog, now=JAN_31 + timedelta(days=3))

    assert _row_count("o1") == 1
    assert second.id == first.id
    assert second.start_date == first.start_date
    assert second.expiry_date == first.expiry_date

    created = [n for n in notifications.list_notifications() if n.event_type == NotificationEventType.NEW_SUBSCRIPTION]
    assert len(created) == 1


def test_interleaved_references_do_not_extend_expiry(make_owner, catalog):
    make_owner("o1")
    subscriptions.activate("o1", PlanKey.WEEKLY, "ref_A", catalog, now=JAN_31)
    current = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_B", catalog, now=JAN_31 + timedelta(days=6))
    expected_expiry = JAN_31 + timedelta(days=13)
    assert current.expiry_date == expected_expiry

    again_a = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_A", catalog, now=JAN_31 + timedelta(days=12))
    again_b = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_B", catalog, now=JAN_31 + timedelta(days=18))

    assert again_a.expiry_date == expected_expiry
    assert again_b.expiry_date == expected_expiry
    assert again_b.last_payment_reference == "ref_B"
    created = [n for n in notifications.list_notifications() if n.event_type == NotificationEventType.NEW_SUBSCRIPTION]
    assert len(created) == 2


def test_older_reference_for_other_plan_does_not_downgrade(make_owner, catalog):
    make_owner("o1")
    subscriptions.activate("o1", PlanKey.WEEKLY, "ref_A", catalog, now=JAN_31)
    subscriptions.activate("o1", PlanKey.YEARLY, "ref_B", catalog, now=JAN_31 + timedelta(days=1))

    sub = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_A", catalog, now=JAN_31 + timedelta(days=2))

    assert sub.plan_key == PlanKey.YEARLY
    assert require_owner("o1").current_plan == PlanKey.YEARLY


def test_expired_subscription_is_not_renewed_by_old_reference(make_owner, catalog):
    make_owner("o1")
    first = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_1", catalog, now=JAN_31)
    subscriptions.expire_lapsed(JAN_31 + timedelta(days=8))

    sub = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_1", catalog, now=JAN_31 + timedelta(days=9))

    assert sub.status == SubscriptionStatus.EXPIRED
    assert sub.expiry_date == first.expiry_date


def test_renewal_with_new_reference_updates_in_place(make_owner, catalog):
    make_owner("o1")
    first = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_1", catalog, now=JAN_31)
    later = JAN_31 + timedelta(days=10)
    second = subscriptions.activate("o1", PlanKey.MONTHLY, "ref_2", catalog, now=later)

    assert _row_count("o1") == 1
    assert second.id == first.id
    assert second.plan_key == PlanKey.MONTHLY
    assert second.start_date == later
    assert second.last_payment_reference == "ref_2"
    assert require_owner("o1").current_plan == PlanKey.MONTHLY


def test_unknown_owner_creates_nothing(catalog):
    with pytest.raises(OwnerNotFoundError):
        subscriptions.activate("ghost", PlanKey.WEEKLY, "ref_1", catalog)
    assert _row_count("ghost") == 0


def test_none_plan_cannot_be_activated(make_owner, catalog):
    make_owner("o1")
    with pytest.raises(ValidationError):
        subscriptions.activate("o1", PlanKey.NONE, "ref_1", catalog)
    assert _row_count("o1") == 0


def test_notification_failure_does_not_undo_activation(make_owner, catalog):
    make_owner("o1")
    with patch("orangerides.features.notifications.service.append", side_effect=RuntimeError("db down")):
        sub = subscriptions.activate("o1", PlanKey.WEEKLY, "ref_1", catalog, now=JAN_31)
    assert sub.status == SubscriptionStatus.ACTIVE
    assert require_owner("o1").current_plan == PlanKey.WEEKLY


def test_expire_lapsed(make_owner, catalog):
    make_owner("o1")
    make_owner("o2")
    subscriptions.activate("o1", PlanKey.WEEKLY, "ref_1", catalog, now=JAN_31)
    subscriptions.activate("o2", PlanKey.YEARLY, "ref_2", catalog, now=JAN_31)

    assert subscriptions.expire_lapsed(JAN_31 + timedelta(days=8)) == 1
    assert subscriptions.get_subscription("o1").status == SubscriptionStatus.EXPIRED
    assert subscriptions.get_subscription("o2").status == SubscriptionStatus.ACTIVE
    # plan is left in place
    assert require_owner("o1").current_plan == PlanKey.WEEKLY
    assert subscriptions.expire_lapsed(JAN_31 + timedelta(days=8)) == 0


def test_select_free_plan_is_direct(make_owner, catalog):
    make_owner("o1", plan="Weekly")
    result = subscriptions.select_plan("o1", PlanKey.NONE, None, catalog)
    assert result["mode"] == "direct"
    assert require_owner("o1").current_plan == PlanKey.NONE


def test_select_paid_plan_redirects(make_owner, catalog):
    make_owner("o1", email="ada@example.com")
    with patch("orangerides.features.payments.service.initialize_payment", return_value="https://checkout.paystack.com/abc") as init:
        result = subscriptions.select_plan("o1", PlanKey.MONTHLY, None, catalog)
    assert result == {"mode": "redirect", "plan_key": "Monthly", "authorization_url": "https://checkout.paystack.com/abc"}
    init.assert_called_once_with("o1", PlanKey.MONTHLY, "ada@example.com", catalog)
    # nothing activates until payment is verified
    assert require_owner("o1").current_plan == PlanKey.NONE
