"""
Payment API routes.

- POST /api/payments/webhook: Paystack webhook (signed, raw body)
- POST /api/payments/verify: Verify a payment by reference
- GET  /api/payments/callback: Same as verify, for the return page
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from orangerides.features.payments import service as payments
from orangerides.features.payments.paystack_provider import signature_from_headers
from orangerides.features.plans.catalog import PlanCatalog, get_plan_catalog


router = APIRouter(prefix="/payments", tags=["payments"])


class VerifyRequest(BaseModel):
    reference: str


class VerifyResponse(BaseModel):
    success: bool
    message: str
    retryable: bool = False


@router.post("/webhook")
async def paystack_webhook(request: Request, catalog: PlanCatalog = Depends(get_plan_catalog)):
    """
    Handle Paystack webhooks.

    The body is read once as bytes; the signature is checked over exactly
    those bytes before anything is parsed.

    Returns:
        200 {"received": true}, 401 on a bad signature, 500 to request a retry
    """
    body = await request.body()
    status_code, content = payments.handle_webhook(body, signature_from_headers(request.headers), catalog)
    return JSONResponse(status_code=status_code, content=content)


@router.post("/verify", response_model=VerifyResponse)
def verify_payment(payload: VerifyRequest, catalog: PlanCatalog = Depends(get_plan_catalog)):
    result = payments.verify_by_reference(payload.reference, catalog)
    return VerifyResponse(success=result.success, message=result.message, retryable=result.retryable)


@router.get("/callback", response_model=VerifyResponse)
def payment_callback(
    reference: str = Query(..., min_length=1),
    catalog: PlanCatalog = Depends(get_plan_catalog),
):
    """Provider redirects the payer here with ?reference=..."""
    result = payments.verify_by_reference(reference, catalog)
    return VerifyResponse(success=result.success, message=result.message, retryable=result.retryable)
