from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict

from orangerides.models.plan import PlanKey


class OwnerStatus(str, Enum):
    PENDING_APPROVAL = "Pending Approval"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class Owner(BaseModel):
    """A ride-owner account. Listing count is derived, not stored here."""
    model_config = ConfigDict(frozen=True)

    owner_id: str
    business_name: str
    business_type: Optional[str] = None
    contact_email: Optional[str] = None
    current_plan: PlanKey = PlanKey.NONE
    status: OwnerStatus = OwnerStatus.PENDING_APPROVAL
    created_at: datetime
    updated_at: datetime
