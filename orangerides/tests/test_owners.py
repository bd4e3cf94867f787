"""
Tests for owner signup and moderation.
"""
import pytest

from orangerides.core.errors import ConflictError, OwnerNotFoundError, ValidationError
from orangerides.features.notifications import service as notifications
from orangerides.features.owners import service as owners
from orangerides.models.notification import NotificationEventType
from orangerides.models.owner import OwnerStatus
from orangerides.models.plan import PlanKey


def test_signup_creates_pending_owner_without_plan():
    owner = owners.register_owner("uid_1", "Lagos Movers", business_type="Bus", contact_email="lm@example.com")
    assert owner.current_plan == PlanKey.NONE
    assert owner.status == OwnerStatus.PENDING_APPROVAL


def test_signup_emits_new_owner_notification():
    owners.register_owner("uid_1", "Lagos Movers")
    items = notifications.list_notifications()
    assert len(items) == 1
    assert items[0].event_type == NotificationEventType.NEW_OWNER
    assert items[0].message == "New ride owner 'Lagos Movers' signed up and needs approval."


def test_signup_rejects_duplicates():
    owners.register_owner("uid_1", "Lagos Movers")
    with pytest.raises(ConflictError):
        owners.register_owner("uid_1", "Someone Else")


def test_signup_requires_business_name():
    with pytest.raises(ValidationError):
        owners.register_owner("uid_1", "   ")


def test_set_status(make_owner):
    make_owner("uid_2", status="Pending Approval")
    owner = owners.set_owner_status("uid_2", OwnerStatus.ACTIVE)
    assert owner.status == OwnerStatus.ACTIVE
    owner = owners.set_owner_status("uid_2", "Suspended")
    assert owner.status == OwnerStatus.SUSPENDED


def test_set_status_rejects_unknown_value(make_owner):
    make_owner("uid_2")
    with pytest.raises(ValidationError):
        owners.set_owner_status("uid_2", "Banned")


def test_set_status_unknown_owner():
    with pytest.raises(OwnerNotFoundError):
        owners.set_owner_status("ghost", OwnerStatus.ACTIVE)


def test_set_plan_with_activate(make_owner):
    make_owner("uid_3", status="Pending Approval")
    owners.set_owner_plan("uid_3", PlanKey.MONTHLY, activate=True)
    owner = owners.require_owner("uid_3")
    assert owner.current_plan == PlanKey.MONTHLY
    assert owner.status == OwnerStatus.ACTIVE


def test_list_owners_by_status(make_owner):
    make_owner("a", status="Active")
    make_owner("b", status="Suspended")
    assert [o.owner_id for o in owners.list_owners(OwnerStatus.SUSPENDED)] == ["b"]
