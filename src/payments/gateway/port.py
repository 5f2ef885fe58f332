"""Payment gateway port (abstract interface).

Defines the contract the payment processor charges through. Only the
simulated adapter exists; a real gateway would implement the same port
without changes to the processor.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ChargeResult:
    """Result of a payment charge attempt."""

    success: bool
    gateway_transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = "unknown"

    @abstractmethod
    async def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method_type: str,
        last4: str | None,
        idempotency_key: str,
    ) -> ChargeResult:
        """Create a charge via the payment gateway."""
        ...
