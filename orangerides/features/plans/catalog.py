"""
orangerides/features/plans/catalog.py

Plan catalog.

The catalog is an immutable value built once at startup (see main.lifespan)
and handed to services explicitly. Nothing here reads or writes global state.
"""

from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union

from dateutil.relativedelta import relativedelta
from fastapi import Request

from orangerides.core.errors import ValidationError
from orangerides.models.plan import Plan, PlanKey


# Default plan table (prices in kobo)
DEFAULT_PLANS = (
    Plan(
        key=PlanKey.NONE,
        display_name="No Plan",
        price_minor_units=0,
        listing_quota=0,
        duration=None,
        features=(),
    ),
    Plan(
        key=PlanKey.WEEKLY,
        display_name="Weekly",
        price_minor_units=10_000 * 100,
        listing_quota=9,
        duration=relativedelta(days=7),
        features=(
            "Up to 9 vehicle listings",
            "Listing visible in search results",
            "WhatsApp and phone contact buttons",
        ),
    ),
    Plan(
        key=PlanKey.MONTHLY,
        display_name="Monthly",
        price_minor_units=35_000 * 100,
        listing_quota=50,
        duration=relativedelta(months=1),
        features=(
            "Up to 50 vehicle listings",
            "Listing visible in search results",
            "WhatsApp and phone contact buttons",
            "Priority listing review",
        ),
    ),
    Plan(
        key=PlanKey.YEARLY,
        display_name="Yearly",
        price_minor_units=350_000 * 100,
        listing_quota=None,  # unlimited
        duration=relativedelta(years=1),
        features=(
            "Unlimited vehicle listings",
            "Listing visible in search results",
            "WhatsApp and phone contact buttons",
            "Priority listing review",
            "Eligible for promoted placement",
        ),
    ),
)


class PlanCatalog:
    """Read-only lookup from PlanKey to Plan."""

    def __init__(self, plans=DEFAULT_PLANS) -> None:
        table = {plan.key: plan for plan in plans}
        if PlanKey.NONE not in table:
            raise ValueError("Plan catalog must define the 'None' plan")
        self._plans: Mapping[PlanKey, Plan] = MappingProxyType(table)

    def __iter__(self) -> Iterator[Plan]:
        return iter(self._plans.values())

    def __contains__(self, key: object) -> bool:
        return key in self._plans

    @staticmethod
    def parse_key(value: Union[str, PlanKey, None]) -> PlanKey:
        """Parse a plan key from provider metadata or a request body."""
        if isinstance(value, PlanKey):
            return value
        if value is None:
            raise ValidationError("Plan key missing")
        try:
            return PlanKey(str(value).strip())
        except ValueError:
            raise ValidationError(f"Unknown plan: {value}")

    def get(self, key: Union[str, PlanKey]) -> Plan:
        plan_key = self.parse_key(key)
        plan = self._plans.get(plan_key)
        if plan is None:
            raise ValidationError(f"Plan not offered: {plan_key.value}")
        return plan

    def quota_for(self, key: Union[str, PlanKey]) -> Optional[int]:
        """Listing quota for a plan; None means unbounded. The 'None' plan is 0."""
        return self.get(key).listing_quota

    def price_for(self, key: Union[str, PlanKey]) -> int:
        return self.get(key).price_minor_units

    def duration_for(self, key: Union[str, PlanKey]) -> relativedelta:
        plan = self.get(key)
        if plan.duration is None:
            raise ValidationError(f"Plan {plan.key.value} has no billing period")
        return plan.duration

    def paid_plans(self) -> list[Plan]:
        return [plan for plan in self if plan.is_paid]


def build_plan_catalog() -> PlanCatalog:
    return PlanCatalog(DEFAULT_PLANS)


def get_plan_catalog(request: Request) -> PlanCatalog:
    """FastAPI dependency returning the catalog installed at startup."""
    return request.app.state.plan_catalog
