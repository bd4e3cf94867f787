"""Listing quota rules. Pure functions, no I/O."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from orangerides.features.plans.catalog import PlanCatalog
from orangerides.models.owner import Owner, OwnerStatus
from orangerides.models.plan import PlanKey

DEFAULT_WARNING_RATIO = 0.8


class QuotaReason(str, Enum):
    ALLOWED = "allowed"
    OWNER_NOT_ACTIVE = "owner_not_active"
    NO_PLAN = "no_plan"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    reason: QuotaReason
    plan_key: PlanKey
    quota: Optional[int]
    current_count: int

    @property
    def remaining(self) -> Optional[int]:
        if self.quota is None:
            return None
        return max(self.quota - self.current_count, 0)


def evaluate(owner: Owner, current_listing_count: int, catalog: PlanCatalog) -> QuotaDecision:
    """Apply the admission rules in order: status, plan, then quota."""
    plan_key = PlanKey(owner.current_plan)
    quota = catalog.quota_for(plan_key)

    if owner.status != OwnerStatus.ACTIVE:
        reason = QuotaReason.OWNER_NOT_ACTIVE
    elif plan_key == PlanKey.NONE:
        reason = QuotaReason.NO_PLAN
    elif quota is not None and current_listing_count >= quota:
        reason = QuotaReason.LIMIT_REACHED
    else:
        reason = QuotaReason.ALLOWED

    return QuotaDecision(
        allowed=reason == QuotaReason.ALLOWED,
        reason=reason,
        plan_key=plan_key,
        quota=quota,
        current_count=current_listing_count,
    )


def can_create_listing(owner: Owner, current_listing_count: int, catalog: PlanCatalog) -> bool:
    return evaluate(owner, current_listing_count, catalog).allowed


def usage_after_create(plan_key: PlanKey, count_before_create: int, catalog: PlanCatalog) -> Optional[float]:
    """Fraction of the quota used once one more listing exists; None if unbounded."""
    quota = catalog.quota_for(plan_key)
    if quota is None or quota <= 0:
        return None
    return (count_before_create + 1) / quota


def should_warn_limit(
    plan_key: PlanKey,
    count_before_create: int,
    catalog: PlanCatalog,
    ratio: float = DEFAULT_WARNING_RATIO,
) -> bool:
    """True on every creation at or past the ratio, not only the first crossing."""
    usage = usage_after_create(plan_key, count_before_create, catalog)
    return usage is not None and usage >= ratio
