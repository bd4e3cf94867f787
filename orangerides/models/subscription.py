"""
orangerides/models/subscription.py

Subscription record: at most one per owner, updated in place on renewal.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict

from orangerides.models.plan import PlanKey


class SubscriptionStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    EXPIRED = "Expired"


class Subscription(BaseModel):
    """
    Invariant: expiry_date > start_date, both derived from the activation
    time plus the plan's duration.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: str
    owner_name: Optional[str] = None
    plan: str
    plan_key: PlanKey
    status: SubscriptionStatus
    start_date: datetime
    expiry_date: datetime
    last_payment_reference: Optional[str] = None
