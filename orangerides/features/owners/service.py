"""
Owner registry.
- register_owner(owner_id, business_name, ...)
- get_owner(owner_id) / require_owner(owner_id)
- set_owner_status(owner_id, status)
- set_owner_plan(owner_id, plan_key)
"""

from datetime import datetime, timezone
from typing import Optional, List, Union

from sqlalchemy import select, insert, update

from orangerides.core.database import get_db_session, ride_owners
from orangerides.core.errors import ConflictError, OwnerNotFoundError, ValidationError
from orangerides.core.logging import log_event
from orangerides.features.notifications import service as notifications
from orangerides.models.notification import NotificationEventType
from orangerides.models.owner import Owner, OwnerStatus
from orangerides.models.plan import PlanKey


def _row_to_owner(row) -> Owner:
    return Owner(
        owner_id=row.owner_id,
        business_name=row.business_name,
        business_type=row.business_type,
        contact_email=row.contact_email,
        current_plan=row.current_plan,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def get_owner(owner_id: str, session=None) -> Optional[Owner]:
    query = select(ride_owners).where(ride_owners.c.owner_id == owner_id)
    if session is not None:
        row = session.execute(query).first()
    else:
        with get_db_session() as s:
            row = s.execute(query).first()
    return _row_to_owner(row) if row else None


def require_owner(owner_id: str) -> Owner:
    owner = get_owner(owner_id)
    if owner is None:
        raise OwnerNotFoundError(f"Owner {owner_id} not found")
    return owner


def list_owners(status: Optional[OwnerStatus] = None) -> List[Owner]:
    query = select(ride_owners).order_by(ride_owners.c.created_at.desc())
    if status is not None:
        query = query.where(ride_owners.c.status == status.value)
    with get_db_session() as session:
        return [_row_to_owner(row) for row in session.execute(query).fetchall()]


def register_owner(
    owner_id: str,
    business_name: str,
    *,
    business_type: Optional[str] = None,
    contact_email: Optional[str] = None,
) -> Owner:
    """Create an owner with no plan, pending approval, and tell the admins."""
    if not owner_id or not owner_id.strip():
        raise ValidationError("owner_id is required")
    if not business_name or not business_name.strip():
        raise ValidationError("business_name is required")

    if get_owner(owner_id) is not None:
        raise ConflictError(f"Owner {owner_id} already registered")

    now = datetime.now(timezone.utc)
    with get_db_session() as session:
        session.execute(
            insert(ride_owners).values(
                owner_id=owner_id,
                business_name=business_name.strip(),
                business_type=business_type,
                contact_email=contact_email,
                current_plan=PlanKey.NONE.value,
                status=OwnerStatus.PENDING_APPROVAL.value,
                created_at=now,
                updated_at=now,
            )
        )

    log_event("info", "owner.registered", owner_id=owner_id, event_type=NotificationEventType.NEW_OWNER.value)
    notifications.append_best_effort(
        f"New ride owner '{business_name.strip()}' signed up and needs approval.",
        NotificationEventType.NEW_OWNER,
        owner_name=business_name.strip(),
    )
    return require_owner(owner_id)


def _update_owner(owner_id: str, session=None, **values) -> None:
    values["updated_at"] = datetime.now(timezone.utc)
    statement = update(ride_owners).where(ride_owners.c.owner_id == owner_id).values(**values)
    if session is not None:
        result = session.execute(statement)
    else:
        with get_db_session() as s:
            result = s.execute(statement)
    if result.rowcount == 0:
        raise OwnerNotFoundError(f"Owner {owner_id} not found")


def set_owner_status(owner_id: str, status: Union[OwnerStatus, str]) -> Owner:
    """Admin moderation: approve or suspend an owner."""
    try:
        new_status = OwnerStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown owner status: {status}")
    _update_owner(owner_id, status=new_status.value)
    log_event("info", "owner.status_changed", owner_id=owner_id, extra={"status": new_status.value})
    return require_owner(owner_id)


def set_owner_plan(owner_id: str, plan_key: PlanKey, session=None, *, activate: bool = False) -> None:
    """Record the owner's plan. activate=True also marks the account Active (paid activation)."""
    values = {"current_plan": plan_key.value}
    if activate:
        values["status"] = OwnerStatus.ACTIVE.value
    _update_owner(owner_id, session=session, **values)
