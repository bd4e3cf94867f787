"""
Payments service orchestrator.

Coordinates:
- Checkout initialization for paid plans
- Verify-by-reference (return page / client confirmation)
- Webhook processing

All Paystack-specific code is in paystack_provider.py. Provider failures are
turned into typed results here; nothing provider-shaped leaks past this module.
Neither path activates a subscription unless the paid amount equals the plan
price exactly.
"""
import hashlib
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple

from sqlalchemy import insert

from orangerides.core.config import settings
from orangerides.core.database import get_db_session, payment_events
from orangerides.core.errors import (
    AmountMismatchError,
    ConfigurationError,
    OwnerNotFoundError,
    PaymentProviderError,
    ProviderUnavailableError,
    SignatureMismatchError,
    ValidationError,
)
from orangerides.core.logging import log_event
from orangerides.features.notifications import service as notifications
from orangerides.features.owners.service import get_owner
from orangerides.features.payments.events import ChargeSuccess, MalformedEventError, parse_event
from orangerides.features.payments.paystack_provider import PaystackProvider
from orangerides.features.payments.provider import PaymentProvider, VerificationResult
from orangerides.features.plans.catalog import PlanCatalog
from orangerides.features.subscriptions import service as subscriptions
from orangerides.models.notification import NotificationEventType
from orangerides.models.plan import PlanKey


RETRY_MESSAGE = "Could not reach the payment gateway. Please try again shortly."


def get_provider() -> PaymentProvider:
    """Get the configured payment provider."""
    return PaystackProvider()


def _record_event(
    reference: Optional[str],
    event_type: str,
    source: str,
    raw: bytes,
    *,
    processed: bool,
    error: Optional[str] = None,
) -> None:
    """Audit only. A failed write is logged and never changes the outcome."""
    now = datetime.now(timezone.utc)
    try:
        with get_db_session() as session:
            session.execute(
                insert(payment_events).values(
                    reference=reference,
                    event_type=event_type,
                    source=source,
                    payload_hash=hashlib.sha256(raw).hexdigest(),
                    processed=processed,
                    error=error,
                    received_at=now,
                    processed_at=now if processed else None,
                )
            )
    except Exception as e:
        log_event(
            "error",
            "payment.ledger.write_failed",
            error_code="internal_error",
            extra={"reference": reference, "event": event_type, "error": str(e)},
        )


def _notify_payment_failed(reference: Optional[str], user_id: Optional[str], plan: Optional[str], reason: str) -> None:
    owner = get_owner(user_id) if user_id else None
    owner_name = owner.business_name if owner else user_id
    notifications.append_best_effort(
        f"Payment {reference or '(no reference)'} from {owner_name or 'unknown owner'} was rejected: {reason}",
        NotificationEventType.PAYMENT_FAILED,
        owner_name=owner_name,
        plan=plan,
    )


def check_amount(plan_key: PlanKey, amount: int, catalog: PlanCatalog) -> None:
    """
    Raises:
        ValidationError: plan is free (a zero-priced plan is never purchasable)
        AmountMismatchError: amount differs from the plan price
    """
    expected = catalog.price_for(plan_key)
    if expected <= 0:
        raise ValidationError(f"Plan {plan_key.value} cannot be purchased")
    if amount != expected:
        raise AmountMismatchError(f"Paid amount {amount} does not match plan price {expected}")


def initialize_payment(owner_id: str, plan_key: PlanKey, email: str, catalog: PlanCatalog) -> str:
    """
    Start a hosted checkout for a paid plan.

    Returns:
        Authorization URL

    Raises:
        ConfigurationError: PAYSTACK_SECRET_KEY missing
        ValidationError: free or unknown plan
        ProviderUnavailableError: network failure or timeout
        PaymentProviderError: provider rejected the request
    """
    plan = catalog.get(plan_key)
    if not plan.is_paid:
        raise ValidationError("Invalid subscription plan selected.")

    provider = get_provider()
    url = provider.initialize_transaction(
        email=email,
        amount=plan.price_minor_units,
        callback_url=settings.PAYSTACK_CALLBACK_URL,
        metadata={"user_id": owner_id, "plan": plan.key.value},
    )
    log_event("info", "payment.initialized", owner_id=owner_id, extra={"plan_key": plan.key.value})
    return url


def verify_by_reference(reference: str, catalog: PlanCatalog) -> VerificationResult:
    """
    Confirm a payment with the provider and activate the subscription on a match.

    Never raises for provider or payment problems; they become failure results.
    """
    if not reference or not reference.strip():
        return VerificationResult(success=False, message="Payment reference is required.")
    reference = reference.strip()

    try:
        provider = get_provider()
        transaction = provider.verify_transaction(reference)
    except ConfigurationError as e:
        log_event("error", "payment.verify.not_configured", error_code=e.code)
        return VerificationResult(success=False, message="Payment verification is not configured.")
    except ProviderUnavailableError as e:
        log_event("warning", "payment.verify.unavailable", error_code=e.code, extra={"reference": reference})
        return VerificationResult(success=False, message=RETRY_MESSAGE, retryable=True)
    except PaymentProviderError as e:
        log_event("warning", "payment.verify.rejected", error_code=e.code, extra={"reference": reference})
        return VerificationResult(success=False, message="Payment could not be verified.")

    raw = reference.encode("utf-8")

    if not transaction.succeeded:
        _record_event(reference, f"verify.{transaction.status}", "verify", raw, processed=True)
        return VerificationResult(success=False, message="Payment was not successful.")

    user_id = transaction.metadata.get("user_id")
    plan_value = transaction.metadata.get("plan")
    if not user_id or not plan_value:
        _record_event(reference, "verify.success", "verify", raw, processed=False, error="missing metadata")
        log_event("warning", "payment.verify.missing_metadata", extra={"reference": reference})
        return VerificationResult(success=False, message="Payment is missing subscription details.")

    try:
        plan_key = catalog.parse_key(plan_value)
        check_amount(plan_key, transaction.amount, catalog)
    except (ValidationError, AmountMismatchError) as e:
        _record_event(reference, "verify.success", "verify", raw, processed=False, error=e.message)
        log_event(
            "warning",
            "payment.verify.rejected_payload",
            owner_id=user_id,
            error_code=e.code,
            extra={"reference": reference, "plan_key": plan_value, "amount": transaction.amount},
        )
        _notify_payment_failed(reference, user_id, str(plan_value), e.message)
        if isinstance(e, AmountMismatchError):
            return VerificationResult(success=False, message="Paid amount does not match plan price.")
        return VerificationResult(success=False, message="Invalid subscription plan.")

    try:
        subscriptions.activate(user_id, plan_key, reference, catalog)
    except OwnerNotFoundError as e:
        _record_event(reference, "verify.success", "verify", raw, processed=False, error=e.message)
        log_event("error", "payment.verify.owner_not_found", owner_id=user_id, error_code=e.code)
        return VerificationResult(success=False, message="User not found.")
    except Exception as e:
        log_event(
            "error",
            "payment.verify.activation_failed",
            owner_id=user_id,
            error_code=getattr(e, "code", "internal_error"),
            extra={"reference": reference, "error": str(e)},
        )
        _record_event(reference, "verify.success", "verify", raw, processed=False, error=str(e))
        return VerificationResult(success=False, message=RETRY_MESSAGE, retryable=True)

    _record_event(reference, "verify.success", "verify", raw, processed=True)
    log_event("info", "payment.verify.activated", owner_id=user_id, extra={"reference": reference, "plan_key": plan_key.value})
    return VerificationResult(success=True, message="Payment verified and subscription activated.")


def handle_webhook(raw_body: bytes, signature: Optional[str], catalog: PlanCatalog) -> Tuple[int, Dict[str, Any]]:
    """
    Authenticate and apply a provider webhook.

    The signature is checked against the exact bytes that are then parsed.

    Returns:
        (status_code, body) for the HTTP layer. 200 acknowledges, 401 rejects
        the caller, 500 asks the provider to retry.
    """
    provider = get_provider()
    try:
        valid = provider.verify_signature(raw_body, signature)
    except ConfigurationError as e:
        log_event("error", "payment.webhook.not_configured", error_code=e.code)
        return 500, {"status": "error", "message": "Webhook secret not configured"}

    if not valid:
        log_event("warning", "payment.webhook.signature_mismatch", error_code=SignatureMismatchError.code)
        return 401, {"status": "Signature mismatch"}

    try:
        event = parse_event(raw_body)
    except MalformedEventError as e:
        log_event("warning", "payment.webhook.malformed", extra={"error": str(e)})
        _record_event(None, "malformed", "webhook", raw_body, processed=False, error=str(e))
        return 200, {"received": True}

    if not isinstance(event, ChargeSuccess):
        log_event("info", "payment.webhook.ignored", extra={"event": event.event_type})
        _record_event(None, event.event_type, "webhook", raw_body, processed=True)
        return 200, {"received": True}

    if not event.has_metadata:
        log_event("warning", "payment.webhook.missing_metadata", extra={"reference": event.reference})
        _record_event(event.reference, "charge.success", "webhook", raw_body, processed=False, error="missing metadata")
        return 200, {"received": True}

    try:
        plan_key = catalog.parse_key(event.plan)
        check_amount(plan_key, event.amount, catalog)
    except (ValidationError, AmountMismatchError) as e:
        log_event(
            "warning",
            "payment.webhook.rejected_payload",
            owner_id=event.user_id,
            error_code=e.code,
            extra={"reference": event.reference, "plan_key": event.plan, "amount": event.amount},
        )
        _record_event(event.reference, "charge.success", "webhook", raw_body, processed=False, error=e.message)
        _notify_payment_failed(event.reference, event.user_id, event.plan, e.message)
        return 200, {"received": True}

    try:
        subscriptions.activate(event.user_id, plan_key, event.reference, catalog)
    except Exception as e:
        log_event(
            "error",
            "payment.webhook.activation_failed",
            owner_id=event.user_id,
            error_code=getattr(e, "code", "internal_error"),
            extra={"reference": event.reference, "error": str(e)},
        )
        _record_event(event.reference, "charge.success", "webhook", raw_body, processed=False, error=str(e))
        return 500, {"status": "error", "message": "Internal Server Error"}

    _record_event(event.reference, "charge.success", "webhook", raw_body, processed=True)
    log_event("info", "payment.webhook.activated", owner_id=event.user_id, extra={"reference": event.reference})
    return 200, {"received": True}
