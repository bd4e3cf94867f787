"""
Subscription activator.

Handles:
- Activation after a verified payment (idempotent upsert, one row per owner)
- Expiry bookkeeping (expire_lapsed)
- Plan selection: free plan applied directly, paid plans go through checkout

activate() may be reached twice for the same payment (webhook and the
verify-by-reference call racing, or a redelivered webhook). Both converge on
the same row. Applied references are kept in applied_payments, so a
reference never extends the expiry twice, even when an older event arrives
after a newer one.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from orangerides.core.database import applied_payments, get_db_session, subscriptions
from orangerides.core.errors import ValidationError
from orangerides.core.logging import log_event
from orangerides.features.notifications import service as notifications
from orangerides.features.owners.service import require_owner, set_owner_plan
from orangerides.features.plans.catalog import PlanCatalog
from orangerides.models.notification import NotificationEventType
from orangerides.models.plan import Plan, PlanKey
from orangerides.models.subscription import Subscription, SubscriptionStatus


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_subscription(row) -> Subscription:
    return Subscription(
        id=row.id,
        owner_id=row.owner_id,
        owner_name=row.owner_name,
        plan=row.plan,
        plan_key=row.plan_key,
        status=row.status,
        start_date=_as_utc(row.start_date),
        expiry_date=_as_utc(row.expiry_date),
        last_payment_reference=row.last_payment_reference,
    )


def compute_expiry(start: datetime, plan: Plan) -> datetime:
    """start + plan duration (calendar-aware for months and years)."""
    if plan.duration is None:
        raise ValidationError(f"Plan {plan.key.value} has no billing period")
    return start + plan.duration


def get_subscription(owner_id: str) -> Optional[Subscription]:
    with get_db_session() as session:
        row = session.execute(
            select(subscriptions)
            .where(subscriptions.c.owner_id == owner_id)
            .order_by(subscriptions.c.id.asc())
        ).first()
    return _row_to_subscription(row) if row else None


def _upsert_subscription(session, owner, plan: Plan, start: datetime, expiry: datetime, payment_reference: Optional[str]) -> None:
    existing = session.execute(
        select(subscriptions.c.id)
        .where(subscriptions.c.owner_id == owner.owner_id)
        .order_by(subscriptions.c.id.asc())
    ).first()
    values = dict(
        owner_name=owner.business_name,
        plan=plan.display_name,
        plan_key=plan.key.value,
        status=SubscriptionStatus.ACTIVE.value,
        start_date=start,
        expiry_date=expiry,
        last_payment_reference=payment_reference,
        updated_at=start,
    )
    if existing is not None:
        session.execute(update(subscriptions).where(subscriptions.c.id == existing.id).values(**values))
    else:
        session.execute(insert(subscriptions).values(owner_id=owner.owner_id, created_at=start, **values))


def _already_applied(session, payment_reference: Optional[str]) -> bool:
    if payment_reference is None:
        return False
    row = session.execute(
        select(applied_payments.c.id).where(applied_payments.c.reference == payment_reference)
    ).first()
    return row is not None


def activate(
    owner_id: str,
    plan_key: PlanKey,
    payment_reference: Optional[str],
    catalog: PlanCatalog,
    now: Optional[datetime] = None,
) -> Subscription:
    """
    Create or refresh the owner's subscription after a verified payment.

    A reference that has been applied before (to any plan, in any order) is a
    no-op: dates, plan and owner are left untouched and no admin is notified.

    Raises:
        OwnerNotFoundError: unknown owner (nothing is written)
        ValidationError: plan has no billing period
    """
    plan = catalog.get(plan_key)
    owner = require_owner(owner_id)
    start = _as_utc(now) or datetime.now(timezone.utc)
    expiry = compute_expiry(start, plan)

    replay = False
    try:
        with get_db_session() as session:
            if _already_applied(session, payment_reference):
                replay = True
            else:
                if payment_reference is not None:
                    session.execute(
                        insert(applied_payments).values(
                            reference=payment_reference,
                            owner_id=owner_id,
                            plan_key=plan.key.value,
                            applied_at=start,
                        )
                    )
                _upsert_subscription(session, owner, plan, start, expiry, payment_reference)
                set_owner_plan(owner_id, plan.key, session=session, activate=True)
    except IntegrityError:
        # Another worker applied the same reference between our check and insert
        replay = True

    if replay:
        log_event(
            "info",
            "subscription.activate.replay",
            owner_id=owner_id,
            extra={"reference": payment_reference, "plan_key": plan.key.value},
        )
        return get_subscription(owner_id)

    log_event(
        "info",
        "subscription.activated",
        owner_id=owner_id,
        event_type=NotificationEventType.NEW_SUBSCRIPTION.value,
        extra={"reference": payment_reference, "plan_key": plan.key.value},
    )
    notifications.append_best_effort(
        f"{owner.business_name} subscribed to the {plan.display_name} plan.",
        NotificationEventType.NEW_SUBSCRIPTION,
        owner_name=owner.business_name,
        plan=plan.key.value,
    )
    return get_subscription(owner_id)


def expire_lapsed(now: Optional[datetime] = None) -> int:
    """Mark Active subscriptions whose expiry has passed as Expired. Returns count."""
    cutoff = _as_utc(now) or datetime.now(timezone.utc)
    with get_db_session() as session:
        result = session.execute(
            update(subscriptions)
            .where(subscriptions.c.status == SubscriptionStatus.ACTIVE.value)
            .where(subscriptions.c.expiry_date <= cutoff)
            .values(status=SubscriptionStatus.EXPIRED.value, updated_at=cutoff)
        )
        expired = result.rowcount or 0
    if expired:
        log_event("info", "subscription.expired", extra={"count": expired})
    return expired


def select_plan(
    owner_id: str,
    plan_key: PlanKey,
    email: Optional[str],
    catalog: PlanCatalog,
) -> Dict[str, Any]:
    """
    Apply a plan choice.

    The free plan is written straight to the owner. Paid plans return a
    checkout URL; activation happens later from the verified payment.
    """
    from orangerides.features.payments import service as payments

    plan = catalog.get(plan_key)
    owner = require_owner(owner_id)

    if not plan.is_paid:
        set_owner_plan(owner_id, plan.key)
        log_event("info", "subscription.select.direct", owner_id=owner_id, extra={"plan_key": plan.key.value})
        return {"mode": "direct", "plan_key": plan.key.value, "authorization_url": None}

    payer_email = email or owner.contact_email
    if not payer_email:
        raise ValidationError("An email address is required to pay for a plan")
    url = payments.initialize_payment(owner_id, plan.key, payer_email, catalog)
    return {"mode": "redirect", "plan_key": plan.key.value, "authorization_url": url}
