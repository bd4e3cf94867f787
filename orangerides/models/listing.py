from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ListingStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SUSPENDED = "Suspended"


class VehicleType(str, Enum):
    BIKE = "Bike"
    CAR = "Car"
    KEKE = "Keke"
    BUS = "Bus"
    VIP = "VIP"


class ListingCreate(BaseModel):
    """Descriptive fields supplied when a listing is created."""
    name: str = Field(..., min_length=1, max_length=200)
    vehicle_type: VehicleType
    price: int = Field(..., ge=0)
    pickup: Optional[str] = None
    schedule: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None


class Listing(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: str
    name: str
    vehicle_type: VehicleType
    price: int
    pickup: Optional[str] = None
    schedule: Optional[str] = None
    capacity: Optional[int] = None
    description: Optional[str] = None
    status: ListingStatus = ListingStatus.PENDING
    posted_by: str = "owner"
    created_at: datetime
