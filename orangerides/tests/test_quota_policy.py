"""
Tests for listing admission rules.
"""
from datetime import datetime, timezone

import pytest

from orangerides.features.quota.policy import (
    QuotaReason,
    can_create_listing,
    evaluate,
    should_warn_limit,
    usage_after_create,
)
from orangerides.models.owner import Owner, OwnerStatus
from orangerides.models.plan import PlanKey


def _owner(plan=PlanKey.WEEKLY, status=OwnerStatus.ACTIVE) -> Owner:
    now = datetime.now(timezone.utc)
    return Owner(
        owner_id="owner_1",
        business_name="Test Rides",
        current_plan=plan,
        status=status,
        created_at=now,
        updated_at=now,
    )


@pytest.mark.parametrize("status", [OwnerStatus.PENDING_APPROVAL, OwnerStatus.SUSPENDED])
def test_inactive_owner_never_allowed(catalog, status):
    for plan in PlanKey:
        assert can_create_listing(_owner(plan, status), 0, catalog) is False
    assert evaluate(_owner(PlanKey.YEARLY, status), 0, catalog).reason == QuotaReason.OWNER_NOT_ACTIVE


def test_none_plan_never_allowed(catalog):
    decision = evaluate(_owner(PlanKey.NONE), 0, catalog)
    assert decision.allowed is False
    assert decision.reason == QuotaReason.NO_PLAN


def test_weekly_boundary(catalog):
    owner = _owner(PlanKey.WEEKLY)
    assert can_create_listing(owner, 8, catalog) is True
    assert can_create_listing(owner, 9, catalog) is False
    assert evaluate(owner, 9, catalog).reason == QuotaReason.LIMIT_REACHED


def test_monthly_boundary(catalog):
    owner = _owner(PlanKey.MONTHLY)
    assert can_create_listing(owner, 49, catalog) is True
    assert can_create_listing(owner, 50, catalog) is False


def test_yearly_is_unbounded(catalog):
    owner = _owner(PlanKey.YEARLY)
    assert can_create_listing(owner, 0, catalog) is True
    assert can_create_listing(owner, 100_000, catalog) is True
    assert evaluate(owner, 5, catalog).remaining is None


def test_over_quota_after_downgrade_is_rejected_not_clamped(catalog):
    # Owner kept 30 listings after moving Monthly -> Weekly
    decision = evaluate(_owner(PlanKey.WEEKLY), 30, catalog)
    assert decision.allowed is False
    assert decision.remaining == 0


def test_remaining(catalog):
    assert evaluate(_owner(PlanKey.WEEKLY), 3, catalog).remaining == 6


def test_warning_threshold_weekly(catalog):
    # (count + 1) / 9 >= 0.8 first holds at count 7 (8/9)
    assert should_warn_limit(PlanKey.WEEKLY, 6, catalog) is False
    assert should_warn_limit(PlanKey.WEEKLY, 7, catalog) is True
    assert should_warn_limit(PlanKey.WEEKLY, 8, catalog) is True


def test_warning_threshold_monthly(catalog):
    assert should_warn_limit(PlanKey.MONTHLY, 38, catalog) is False
    assert should_warn_limit(PlanKey.MONTHLY, 39, catalog) is True


def test_warning_never_for_unbounded_or_none(catalog):
    assert should_warn_limit(PlanKey.YEARLY, 10_000, catalog) is False
    assert should_warn_limit(PlanKey.NONE, 0, catalog) is False
    assert usage_after_create(PlanKey.YEARLY, 10, catalog) is None


def test_custom_ratio(catalog):
    assert should_warn_limit(PlanKey.WEEKLY, 4, catalog, ratio=0.5) is True
    assert should_warn_limit(PlanKey.WEEKLY, 3, catalog, ratio=0.5) is False
