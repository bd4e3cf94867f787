"""
Listing service.

Handles:
- Counting an owner's listings (the quota's only input besides the plan)
- Quota-gated creation for owners and for admins acting on their behalf
- Usage notifications (limit_warning past 80%, limit_reached on admin blocks)

Consistency contract for count_listings: it is a plain read, not locked
against the following insert. Two concurrent creations from the same owner
can both pass the gate and exceed the quota by one. This is accepted as a
soft limit.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, insert, delete, func

from orangerides.core.config import settings
from orangerides.core.database import get_db_session, listings
from orangerides.core.errors import NotFoundError, PermissionError, QuotaExceededError
from orangerides.core.logging import log_event
from orangerides.features.notifications import service as notifications
from orangerides.features.owners.service import require_owner
from orangerides.features.plans.catalog import PlanCatalog
from orangerides.features.quota.policy import (
    QuotaDecision,
    QuotaReason,
    evaluate,
    should_warn_limit,
    usage_after_create,
)
from orangerides.models.listing import Listing, ListingCreate, ListingStatus
from orangerides.models.notification import NotificationEventType
from orangerides.models.owner import Owner


_DENIAL_MESSAGES = {
    QuotaReason.OWNER_NOT_ACTIVE: "Owner account is not active. New listings cannot be added.",
    QuotaReason.NO_PLAN: "You do not have an active subscription.",
}


def _row_to_listing(row) -> Listing:
    return Listing(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        vehicle_type=row.vehicle_type,
        price=row.price,
        pickup=row.pickup,
        schedule=row.schedule,
        capacity=row.capacity,
        description=row.description,
        status=row.status,
        posted_by=row.posted_by,
        created_at=row.created_at,
    )


def count_listings(owner_id: str) -> int:
    """Number of listings currently stored for the owner."""
    with get_db_session() as session:
        value = session.execute(
            select(func.count()).select_from(listings).where(listings.c.owner_id == owner_id)
        ).scalar_one()
    return int(value or 0)


def list_listings(owner_id: str) -> List[Listing]:
    with get_db_session() as session:
        rows = session.execute(
            select(listings)
            .where(listings.c.owner_id == owner_id)
            .order_by(listings.c.created_at.desc(), listings.c.id.desc())
        ).fetchall()
    return [_row_to_listing(row) for row in rows]


def get_listing(listing_id: int) -> Optional[Listing]:
    with get_db_session() as session:
        row = session.execute(select(listings).where(listings.c.id == listing_id)).first()
    return _row_to_listing(row) if row else None


def check_eligibility(owner_id: str, catalog: PlanCatalog) -> QuotaDecision:
    owner = require_owner(owner_id)
    return evaluate(owner, count_listings(owner_id), catalog)


def _denial_message(decision: QuotaDecision) -> str:
    if decision.reason == QuotaReason.LIMIT_REACHED:
        return (
            f"You have reached the maximum of {decision.quota} listings "
            f"for your {decision.plan_key.value} plan."
        )
    return _DENIAL_MESSAGES[decision.reason]


def _notify_usage(owner: Owner, decision: QuotaDecision, catalog: PlanCatalog) -> None:
    if not should_warn_limit(decision.plan_key, decision.current_count, catalog, settings.LIMIT_WARNING_RATIO):
        return
    usage = usage_after_create(decision.plan_key, decision.current_count, catalog)
    notifications.append_best_effort(
        f"{owner.business_name} is at {round(usage * 100)}% of their listing limit.",
        NotificationEventType.LIMIT_WARNING,
        owner_name=owner.business_name,
        plan=decision.plan_key.value,
    )


def create_listing(
    owner_id: str,
    data: ListingCreate,
    catalog: PlanCatalog,
    *,
    posted_by: str = "owner",
) -> Listing:
    """Create a listing if the owner's plan admits one more.

    The quota is re-checked here, immediately before the insert, regardless
    of what the client displayed.

    Raises:
        OwnerNotFoundError: unknown owner
        QuotaExceededError: owner inactive, no plan, or quota reached
    """
    owner = require_owner(owner_id)
    decision = evaluate(owner, count_listings(owner_id), catalog)

    if not decision.allowed:
        log_event(
            "warning",
            "listing.create.blocked",
            owner_id=owner_id,
            error_code="quota_exceeded",
            extra={"reason": decision.reason.value, "count": decision.current_count, "posted_by": posted_by},
        )
        if posted_by == "admin" and decision.reason == QuotaReason.LIMIT_REACHED:
            notifications.append_best_effort(
                f"Listing limit reached for {owner.business_name} on {decision.plan_key.value} plan.",
                NotificationEventType.LIMIT_REACHED,
                owner_name=owner.business_name,
                plan=decision.plan_key.value,
            )
        raise QuotaExceededError(_denial_message(decision))

    now = datetime.now(timezone.utc)
    with get_db_session() as session:
        result = session.execute(
            insert(listings).values(
                owner_id=owner_id,
                name=data.name,
                vehicle_type=data.vehicle_type.value,
                price=data.price,
                pickup=data.pickup,
                schedule=data.schedule,
                capacity=data.capacity,
                description=data.description,
                status=ListingStatus.PENDING.value,
                posted_by=posted_by,
                created_at=now,
            )
        )
        listing_id = result.inserted_primary_key[0]

    log_event(
        "info",
        "listing.created",
        owner_id=owner_id,
        extra={"listing_id": listing_id, "count": decision.current_count + 1, "posted_by": posted_by},
    )
    _notify_usage(owner, decision, catalog)
    return get_listing(listing_id)


def delete_listing(listing_id: int, *, owner_id: Optional[str] = None) -> None:
    """Remove a listing. When owner_id is given the listing must belong to it."""
    listing = get_listing(listing_id)
    if listing is None:
        raise NotFoundError(f"Listing {listing_id} not found")
    if owner_id is not None and listing.owner_id != owner_id:
        raise PermissionError("Listing belongs to another owner")
    with get_db_session() as session:
        session.execute(delete(listings).where(listings.c.id == listing_id))
    log_event("info", "listing.deleted", owner_id=listing.owner_id, extra={"listing_id": listing_id})
