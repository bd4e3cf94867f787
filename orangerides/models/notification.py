from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class NotificationEventType(str, Enum):
    NEW_SUBSCRIPTION = "new_subscription"
    LIMIT_WARNING = "limit_warning"
    LIMIT_REACHED = "limit_reached"
    NEW_OWNER = "new_owner"
    PAYMENT_FAILED = "payment_failed"


class AdminNotification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    message: str
    event_type: NotificationEventType
    owner_name: Optional[str] = None
    plan: Optional[str] = None
    read: bool = False
    created_at: datetime
