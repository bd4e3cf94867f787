"""
Payment provider protocol.

Defines the interface for payment gateways (Paystack today).
Business logic in service.py depends only on this protocol so the gateway
can be swapped or faked in tests.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TransactionVerification:
    """Provider's view of a single transaction."""
    status: str  # success, failed, abandoned, ...
    amount: int  # minor units (kobo)
    reference: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome handed back to the client after verifying a payment."""
    success: bool
    message: str
    retryable: bool = False


class PaymentProvider(Protocol):
    """
    Protocol for payment providers.

    Implementations must handle:
    - Transaction initialization (hosted checkout)
    - Transaction verification by reference
    - Webhook signature verification
    """

    def initialize_transaction(
        self,
        email: str,
        amount: int,
        callback_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Start a hosted checkout.

        Returns:
            Authorization URL to redirect the payer to

        Raises:
            ProviderUnavailableError: network failure or timeout
            PaymentProviderError: provider rejected the request
        """
        ...

    def verify_transaction(self, reference: str) -> TransactionVerification:
        """
        Look up a transaction by reference.

        Raises:
            ProviderUnavailableError: network failure or timeout
            PaymentProviderError: provider rejected the request
        """
        ...

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """True only if signature matches the HMAC of raw_body."""
        ...
