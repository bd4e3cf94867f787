"""
Listing routes.

- POST   /api/listings: owner creates a listing (X-User-Id)
- POST   /api/admin/listings: admin creates a listing for an owner
- GET    /api/owners/{owner_id}/listings
- DELETE /api/listings/{listing_id}: owner removes one of their listings
"""
from typing import List

from fastapi import APIRouter, Depends

from orangerides.core.admin_auth import AdminActor, require_admin
from orangerides.core.auth import get_current_owner_id
from orangerides.features.listings import service as listings
from orangerides.features.plans.catalog import PlanCatalog, get_plan_catalog
from orangerides.models.listing import Listing, ListingCreate


router = APIRouter(tags=["listings"])


class AdminListingCreate(ListingCreate):
    owner_id: str


@router.post("/listings", response_model=Listing, status_code=201)
def create_listing(
    payload: ListingCreate,
    owner_id: str = Depends(get_current_owner_id),
    catalog: PlanCatalog = Depends(get_plan_catalog),
):
    return listings.create_listing(owner_id, payload, catalog, posted_by="owner")


@router.post("/admin/listings", response_model=Listing, status_code=201)
def admin_create_listing(
    payload: AdminListingCreate,
    actor: AdminActor = Depends(require_admin),
    catalog: PlanCatalog = Depends(get_plan_catalog),
):
    data = ListingCreate(**payload.model_dump(exclude={"owner_id"}))
    return listings.create_listing(payload.owner_id, data, catalog, posted_by="admin")


@router.get("/owners/{owner_id}/listings", response_model=List[Listing])
def list_owner_listings(owner_id: str):
    return listings.list_listings(owner_id)


@router.delete("/listings/{listing_id}")
def delete_listing(listing_id: int, owner_id: str = Depends(get_current_owner_id)):
    listings.delete_listing(listing_id, owner_id=owner_id)
    return {"deleted": True, "id": listing_id}
