"""
Subscription and plan routes.

- GET  /api/plans
- POST /api/subscriptions/select
- GET  /api/subscriptions/{owner_id}
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from orangerides.core.auth import get_current_owner_id
from orangerides.core.errors import NotFoundError, PermissionError
from orangerides.features.plans.catalog import PlanCatalog, get_plan_catalog
from orangerides.features.subscriptions import service as subscriptions


router = APIRouter(tags=["subscriptions"])


class PlanResponse(BaseModel):
    key: str
    display_name: str
    price_minor_units: int
    listing_quota: Optional[int]
    unlimited: bool
    features: List[str]


class SelectPlanRequest(BaseModel):
    owner_id: Optional[str] = None  # defaults to the caller
    plan_key: str
    email: Optional[str] = None


class SelectPlanResponse(BaseModel):
    mode: str  # direct | redirect
    plan_key: str
    authorization_url: Optional[str] = None


class SubscriptionResponse(BaseModel):
    owner_id: str
    owner_name: Optional[str]
    plan: str
    plan_key: str
    status: str
    start_date: datetime
    expiry_date: datetime


@router.get("/plans", response_model=List[PlanResponse])
def list_plans(catalog: PlanCatalog = Depends(get_plan_catalog)):
    """Paid plans, cheapest first."""
    plans = sorted(catalog.paid_plans(), key=lambda p: p.price_minor_units)
    return [
        PlanResponse(
            key=plan.key.value,
            display_name=plan.display_name,
            price_minor_units=plan.price_minor_units,
            listing_quota=plan.listing_quota,
            unlimited=plan.is_unbounded,
            features=list(plan.features),
        )
        for plan in plans
    ]


@router.post("/subscriptions/select", response_model=SelectPlanResponse)
def select_plan(
    payload: SelectPlanRequest,
    caller_id: str = Depends(get_current_owner_id),
    catalog: PlanCatalog = Depends(get_plan_catalog),
):
    """Owners may only change their own plan."""
    if payload.owner_id is not None and payload.owner_id != caller_id:
        raise PermissionError("Cannot select a plan for another owner")
    plan_key = catalog.parse_key(payload.plan_key)
    return subscriptions.select_plan(caller_id, plan_key, payload.email, catalog)


@router.get("/subscriptions/{owner_id}", response_model=SubscriptionResponse)
def get_subscription(owner_id: str):
    subscription = subscriptions.get_subscription(owner_id)
    if subscription is None:
        raise NotFoundError(f"No subscription for owner {owner_id}")
    return SubscriptionResponse(
        owner_id=subscription.owner_id,
        owner_name=subscription.owner_name,
        plan=subscription.plan,
        plan_key=subscription.plan_key.value,
        status=subscription.status.value,
        start_date=subscription.start_date,
        expiry_date=subscription.expiry_date,
    )
