"""
Ride owner routes.

- POST  /api/owners: signup
- GET   /api/owners?status= (admin)
- GET   /api/owners/{owner_id}
- GET   /api/owners/{owner_id}/listing-eligibility
- PATCH /api/owners/{owner_id}/status (admin)
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from orangerides.core.admin_auth import AdminActor, require_admin
from orangerides.core.errors import OwnerNotFoundError
from orangerides.core.logging import log_event
from orangerides.features.listings import service as listings
from orangerides.features.owners import service as owners
from orangerides.features.plans.catalog import PlanCatalog, get_plan_catalog
from orangerides.models.owner import Owner, OwnerStatus


router = APIRouter(prefix="/owners", tags=["owners"])


class SignupRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=128)
    business_name: str = Field(..., min_length=1, max_length=200)
    business_type: Optional[str] = None
    contact_email: Optional[str] = None


class OwnerStatusRequest(BaseModel):
    status: OwnerStatus


class OwnerResponse(BaseModel):
    owner_id: str
    business_name: str
    business_type: Optional[str]
    contact_email: Optional[str]
    current_plan: str
    status: str
    created_at: datetime


class EligibilityResponse(BaseModel):
    allowed: bool
    reason: str
    plan_key: str
    quota: Optional[int]
    current_count: int
    remaining: Optional[int]


def _to_response(owner: Owner) -> OwnerResponse:
    return OwnerResponse(
        owner_id=owner.owner_id,
        business_name=owner.business_name,
        business_type=owner.business_type,
        contact_email=owner.contact_email,
        current_plan=owner.current_plan.value,
        status=owner.status.value,
        created_at=owner.created_at,
    )


@router.post("", response_model=OwnerResponse, status_code=201)
def signup(payload: SignupRequest):
    owner = owners.register_owner(
        payload.owner_id,
        payload.business_name,
        business_type=payload.business_type,
        contact_email=payload.contact_email,
    )
    return _to_response(owner)


@router.get("", response_model=List[OwnerResponse])
def list_owners(status: Optional[OwnerStatus] = None, actor: AdminActor = Depends(require_admin)):
    """Moderation queue, newest first. Filter with ?status=Pending%20Approval."""
    return [_to_response(owner) for owner in owners.list_owners(status)]


@router.get("/{owner_id}", response_model=OwnerResponse)
def get_owner(owner_id: str):
    owner = owners.get_owner(owner_id)
    if owner is None:
        raise OwnerNotFoundError(f"Owner {owner_id} not found")
    return _to_response(owner)


@router.get("/{owner_id}/listing-eligibility", response_model=EligibilityResponse)
def listing_eligibility(owner_id: str, catalog: PlanCatalog = Depends(get_plan_catalog)):
    """What the client should show before offering the 'add listing' form."""
    decision = listings.check_eligibility(owner_id, catalog)
    return EligibilityResponse(
        allowed=decision.allowed,
        reason=decision.reason.value,
        plan_key=decision.plan_key.value,
        quota=decision.quota,
        current_count=decision.current_count,
        remaining=decision.remaining,
    )


@router.patch("/{owner_id}/status", response_model=OwnerResponse)
def update_status(owner_id: str, payload: OwnerStatusRequest, actor: AdminActor = Depends(require_admin)):
    owner = owners.set_owner_status(owner_id, payload.status)
    log_event("info", "admin.owner_status", owner_id=owner_id, extra={"actor": actor.actor_id, "status": payload.status.value})
    return _to_response(owner)
