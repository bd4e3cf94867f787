"""
Admin notification inbox routes (X-Admin-Key required).
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from orangerides.core.admin_auth import AdminActor, require_admin
from orangerides.features.notifications import service as notifications


router = APIRouter(prefix="/admin/notifications", tags=["admin-notifications"])


class NotificationResponse(BaseModel):
    id: int
    message: str
    event_type: str
    owner_name: Optional[str]
    plan: Optional[str]
    read: bool
    created_at: datetime


class InboxResponse(BaseModel):
    items: List[NotificationResponse]
    unread: int


@router.get("", response_model=InboxResponse)
def get_inbox(
    unread_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    actor: AdminActor = Depends(require_admin),
):
    items = notifications.list_notifications(unread_only=unread_only, limit=limit)
    return InboxResponse(
        items=[
            NotificationResponse(
                id=n.id,
                message=n.message,
                event_type=n.event_type.value,
                owner_name=n.owner_name,
                plan=n.plan,
                read=n.read,
                created_at=n.created_at,
            )
            for n in items
        ],
        unread=notifications.unread_count(),
    )


@router.post("/read-all")
def read_all(actor: AdminActor = Depends(require_admin)):
    return {"updated": notifications.mark_all_read()}


@router.post("/{notification_id}/read")
def read_one(notification_id: int, actor: AdminActor = Depends(require_admin)):
    notifications.mark_read(notification_id)
    return {"id": notification_id, "read": True}


@router.delete("/{notification_id}")
def delete_one(notification_id: int, actor: AdminActor = Depends(require_admin)):
    notifications.delete_notification(notification_id)
    return {"deleted": True, "id": notification_id}
