"""Simulated payment gateway.

No money moves. Each charge waits a fixed delay standing in for the
gateway round-trip, then succeeds unless the gateway was configured to
fail or the random decline roll hits. Useful for:
- Manual API testing via /payments/gateway/configure
- Automated tests with zero delay and zero decline rate
- Storefront development before a real gateway is chosen
"""

import asyncio
import random
import time
from collections import deque

import structlog

from payments.gateway.port import ChargeResult, PaymentGateway

logger = structlog.get_logger(__name__)

# Charges kept in ``calls`` for inspection; older ones are dropped
RECENT_CHARGES = 50


class SimulatedGateway(PaymentGateway):
    """Configurable simulated payment gateway."""

    name = "simulated"

    def __init__(
        self,
        delay_seconds: float = 2.0,
        decline_rate: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        self.delay_seconds = delay_seconds
        self.decline_rate = decline_rate
        self.should_succeed: bool = True
        self.failure_reason: str = "Your card was declined. Please try a different payment method."
        self.calls: deque[dict] = deque(maxlen=RECENT_CHARGES)
        self._rng = rng or random.Random()

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str | None = None,
        decline_rate: float | None = None,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        if failure_reason:
            self.failure_reason = failure_reason
        if decline_rate is not None:
            self.decline_rate = decline_rate

    async def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method_type: str,
        last4: str | None,
        idempotency_key: str,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "create_charge",
                "amount": amount,
                "currency": currency,
                "payment_method_type": payment_method_type,
                "last4": last4,
                "idempotency_key": idempotency_key,
            }
        )

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        declined = not self.should_succeed or self._rng.random() < self.decline_rate
        if declined:
            logger.info("Simulated charge declined", idempotency_key=idempotency_key, amount=amount)
            return ChargeResult(success=False, gateway_status="declined", failure_reason=self.failure_reason)

        return ChargeResult(
            success=True,
            gateway_transaction_id=f"sim_{time.time_ns() // 1_000_000}",
            gateway_status="succeeded",
        )
