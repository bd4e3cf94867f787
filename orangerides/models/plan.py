"""
orangerides/models/plan.py

Plan model for listing quotas.

Plans are immutable values: they are never persisted and never mutated.
Prices are in minor units (kobo) so they compare exactly against provider
amounts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta


class PlanKey(str, Enum):
    NONE = "None"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


@dataclass(frozen=True)
class Plan:
    """
    A named tier governing how many listings an owner may publish.

    listing_quota of None means Unbounded.
    """
    key: PlanKey
    display_name: str
    price_minor_units: int
    listing_quota: Optional[int]
    duration: Optional[relativedelta] = None
    features: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_unbounded(self) -> bool:
        return self.listing_quota is None

    @property
    def is_paid(self) -> bool:
        return self.price_minor_units > 0
