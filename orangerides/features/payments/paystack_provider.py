"""
Paystack payment provider implementation.

Implements PaymentProvider using the Paystack REST API over httpx.
Every outbound call carries an explicit timeout; transport failures are
raised as ProviderUnavailableError so callers can tell "try again" apart
from "rejected".
"""
import hmac
import hashlib
from typing import Dict, Any, Optional
from urllib.parse import quote

import httpx

from orangerides.core.config import settings
from orangerides.core.errors import ConfigurationError, PaymentProviderError, ProviderUnavailableError
from orangerides.features.payments.provider import TransactionVerification


SIGNATURE_HEADERS = ("x-paystack-signature", "x-signature")


class PaystackProvider:
    """Paystack implementation of PaymentProvider protocol."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize Paystack provider.

        Args:
            secret_key: API secret (defaults to PAYSTACK_SECRET_KEY)
            webhook_secret: HMAC key for webhooks (defaults to PAYSTACK_WEBHOOK_SECRET)
            base_url: API root (defaults to PAYSTACK_BASE_URL)
            timeout: Seconds per request (defaults to PAYSTACK_TIMEOUT_SECONDS)
            transport: Optional httpx transport, used by tests
        """
        self.secret_key = secret_key or settings.PAYSTACK_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.PAYSTACK_WEBHOOK_SECRET
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.PAYSTACK_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.Client:
        if not self.secret_key:
            raise ConfigurationError("PAYSTACK_SECRET_KEY not configured")
        return httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={"Authorization": f"Bearer {self.secret_key}"},
            transport=self._transport,
        )

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            with self._client() as client:
                response = client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderUnavailableError(f"Paystack request timed out: {e}")
        except httpx.TransportError as e:
            raise ProviderUnavailableError(f"Could not reach Paystack: {e}")

        try:
            body = response.json()
        except ValueError:
            raise PaymentProviderError(f"Paystack returned a non-JSON response ({response.status_code})")

        if response.status_code >= 500:
            raise ProviderUnavailableError(body.get("message") or f"Paystack error {response.status_code}")
        if not response.is_success or not body.get("status"):
            raise PaymentProviderError(body.get("message") or "Paystack rejected the request")
        return body

    def initialize_transaction(
        self,
        email: str,
        amount: int,
        callback_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Create a Paystack transaction and return its authorization URL."""
        body = self._request(
            "POST",
            "/transaction/initialize",
            json={
                "email": email,
                "amount": amount,
                "callback_url": callback_url,
                "metadata": metadata or {},
            },
        )
        url = (body.get("data") or {}).get("authorization_url")
        if not url:
            raise PaymentProviderError("Paystack response missing authorization_url")
        return url

    def verify_transaction(self, reference: str) -> TransactionVerification:
        """Fetch the transaction and normalize it."""
        body = self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        data = body.get("data") or {}
        metadata = data.get("metadata")
        return TransactionVerification(
            status=str(data.get("status") or "unknown"),
            amount=int(data.get("amount") or 0),
            reference=str(data.get("reference") or reference),
            metadata=metadata if isinstance(metadata, dict) else {},
        )

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """HMAC-SHA512 of the raw bytes, compared in constant time."""
        if not self.webhook_secret:
            raise ConfigurationError("PAYSTACK_WEBHOOK_SECRET not configured")
        if not signature:
            return False
        expected = compute_signature(self.webhook_secret, raw_body)
        return hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8"))


def compute_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def signature_from_headers(headers) -> Optional[str]:
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None
