"""
Admin notification sink.

Handles:
- Appending system events (subscriptions, quota warnings, signups, failed payments)
- Read-state changes for the admin inbox
- Listing newest first
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Union

from sqlalchemy import select, insert, update, delete, func

from orangerides.core.database import get_db_session, admin_notifications
from orangerides.core.errors import NotFoundError
from orangerides.models.notification import AdminNotification, NotificationEventType


logger = logging.getLogger("orangerides.notifications")


def _row_to_notification(row) -> AdminNotification:
    return AdminNotification(
        id=row.id,
        message=row.message,
        event_type=row.event_type,
        owner_name=row.owner_name,
        plan=row.plan,
        read=bool(row.read),
        created_at=row.created_at,
    )


def append(
    message: str,
    event_type: Union[NotificationEventType, str],
    *,
    owner_name: Optional[str] = None,
    plan: Optional[str] = None,
    now: Optional[datetime] = None,
) -> int:
    """Append a notification and return its id."""
    event = NotificationEventType(event_type)
    with get_db_session() as session:
        result = session.execute(
            insert(admin_notifications).values(
                message=message,
                event_type=event.value,
                owner_name=owner_name,
                plan=plan,
                read=False,
                created_at=now or datetime.now(timezone.utc),
            )
        )
        notification_id = result.inserted_primary_key[0]
    logger.info("notification.appended", extra={"event_type": event.value})
    return notification_id


def append_best_effort(message: str, event_type: Union[NotificationEventType, str], **kwargs) -> Optional[int]:
    """Append without letting a failure propagate. Notifications are informational only."""
    try:
        return append(message, event_type, **kwargs)
    except Exception:
        logger.error(
            "notification.append_failed",
            exc_info=True,
            extra={"event_type": str(getattr(event_type, "value", event_type))},
        )
        return None


def list_notifications(*, unread_only: bool = False, limit: int = 100) -> List[AdminNotification]:
    query = select(admin_notifications)
    if unread_only:
        query = query.where(admin_notifications.c.read == False)  # noqa: E712
    query = query.order_by(
        admin_notifications.c.created_at.desc(),
        admin_notifications.c.id.desc(),
    ).limit(limit)
    with get_db_session() as session:
        rows = session.execute(query).fetchall()
    return [_row_to_notification(row) for row in rows]


def unread_count() -> int:
    with get_db_session() as session:
        value = session.execute(
            select(func.count())
            .select_from(admin_notifications)
            .where(admin_notifications.c.read == False)  # noqa: E712
        ).scalar_one()
    return int(value or 0)


def mark_read(notification_id: int) -> None:
    with get_db_session() as session:
        result = session.execute(
            update(admin_notifications)
            .where(admin_notifications.c.id == notification_id)
            .values(read=True)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Notification {notification_id} not found")


def mark_all_read() -> int:
    """Flip every unread notification; returns how many changed."""
    with get_db_session() as session:
        result = session.execute(
            update(admin_notifications)
            .where(admin_notifications.c.read == False)  # noqa: E712
            .values(read=True)
        )
        return result.rowcount or 0


def delete_notification(notification_id: int) -> None:
    with get_db_session() as session:
        result = session.execute(
            delete(admin_notifications).where(admin_notifications.c.id == notification_id)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Notification {notification_id} not found")
