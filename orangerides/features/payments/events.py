"""
Webhook event parsing.

The raw body is parsed once, after the signature has been checked against
the same bytes, into one of a closed set of variants.
"""
import json
from dataclasses import dataclass
from typing import Optional, Union


CHARGE_SUCCESS = "charge.success"


class MalformedEventError(ValueError):
    """Body is not a JSON object."""


@dataclass(frozen=True)
class ChargeSuccess:
    reference: Optional[str]
    amount: int
    user_id: Optional[str]
    plan: Optional[str]

    @property
    def has_metadata(self) -> bool:
        return bool(self.user_id) and bool(self.plan)


@dataclass(frozen=True)
class UnknownEvent:
    event_type: str


WebhookEvent = Union[ChargeSuccess, UnknownEvent]


def parse_event(raw_body: bytes) -> WebhookEvent:
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedEventError(f"Invalid webhook body: {e}")
    if not isinstance(payload, dict):
        raise MalformedEventError("Webhook body must be a JSON object")

    event_type = str(payload.get("event") or "unknown")
    if event_type != CHARGE_SUCCESS:
        return UnknownEvent(event_type=event_type)

    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    try:
        amount = int(data.get("amount") or 0)
    except (TypeError, ValueError):
        amount = 0
    return ChargeSuccess(
        reference=data.get("reference"),
        amount=amount,
        user_id=metadata.get("user_id"),
        plan=metadata.get("plan"),
    )
