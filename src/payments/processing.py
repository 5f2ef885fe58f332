"""Paying a pending order through the configured gateway.

The only order transition the gateway performs: ``pending`` to
``processing``. Once the charge has started the sequence runs to the end
even if the client goes away, so a successful charge is always recorded on
the order and the session is always released.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from payments.gateway.port import PaymentGateway
from sessions.store import SessionStore
from shared.errors import NotFoundError, PaymentDeclinedError, UpstreamError, ValidationError, upstream_operation
from upstream.port import CommercePort

logger = structlog.get_logger(__name__)

CARD_METHOD = "bank"
CARD_GATEWAY_METHOD = "woocommerce_payments"
CARD_METHOD_TITLE = "Credit / Debit Card"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class CardDetails:
    card_number: str = ""
    card_holder: str = ""
    expiry_month: str = ""
    expiry_year: str = ""
    cvc: str = ""

    @property
    def digits(self) -> str:
        return "".join(self.card_number.split())

    @property
    def last4(self) -> str:
        return self.digits[-4:] if self.digits else "****"

    def validate(self, today: datetime) -> None:
        if not all((self.card_number, self.card_holder, self.expiry_month, self.expiry_year, self.cvc)):
            raise ValidationError({"card_details": "Incomplete card details"}, message="Incomplete card details")
        if not 13 <= len(self.digits) <= 19 or not self.digits.isdigit():
            raise ValidationError({"card_number": "Invalid card number"}, message="Invalid card number")
        try:
            month, year = int(self.expiry_month), int(self.expiry_year)
        except ValueError as exc:
            raise ValidationError({"expiry": "Invalid expiry date"}, message="Invalid expiry date") from exc
        if year < today.year or (year == today.year and month < today.month):
            raise ValidationError({"expiry": "Card has expired"}, message="Card has expired")


def payment_summary(order: dict) -> dict:
    return {
        "id": order.get("id"),
        "order_key": order.get("order_key"),
        "status": order.get("status"),
        "total": order.get("total"),
        "currency": order.get("currency"),
        "date_paid": order.get("date_paid"),
        "payment_method": order.get("payment_method_title"),
    }


class PaymentProcessor:
    def __init__(
        self,
        commerce: CommercePort,
        sessions: SessionStore,
        gateway: PaymentGateway,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._commerce = commerce
        self._sessions = sessions
        self._gateway = gateway
        self._clock = clock

    async def _pending_order(self, order_id: int) -> dict:
        try:
            order = await self._commerce.get_order(order_id)
        except UpstreamError as exc:
            if exc.is_not_found:
                raise NotFoundError("Order not found", error=exc.payload) from exc
            raise
        status = order.get("status")
        if status != "pending":
            raise ValidationError({"order_id": f"Order is already {status}"}, message=f"Order is already {status}")
        return order

    async def process(
        self,
        order_id: int,
        payment_method: str,
        card: CardDetails | None = None,
        session_id: str | None = None,
        customer_id: int | None = None,
    ) -> dict:
        with upstream_operation("Payment processing failed"):
            order = await self._pending_order(order_id)

            if payment_method == CARD_METHOD:
                if card is None:
                    raise ValidationError(
                        {"card_details": "Card details are required for card payments"},
                        message="Card details are required for card payments",
                    )
                card.validate(self._clock())

            logger.info(
                "Processing payment",
                order_id=order_id,
                payment_method=payment_method,
                session_id=session_id,
                has_card_details=card is not None,
            )
            return await asyncio.shield(self._settle(order, payment_method, card, session_id, customer_id))

    async def _settle(
        self,
        order: dict,
        payment_method: str,
        card: CardDetails | None,
        session_id: str | None,
        customer_id: int | None,
    ) -> dict:
        charge = await self._gateway.create_charge(
            amount=float(order.get("total") or 0),
            currency=order.get("currency") or "",
            payment_method_type=payment_method,
            last4=card.last4 if card else None,
            idempotency_key=f"order-{order['id']}",
        )
        if not charge.success:
            logger.warning("Payment declined", order_id=order["id"], reason=charge.failure_reason)
            raise PaymentDeclinedError("Payment declined", error=charge.failure_reason)

        is_card = payment_method == CARD_METHOD
        payload = {
            "status": "processing",
            "payment_method": CARD_GATEWAY_METHOD if is_card else payment_method,
            "payment_method_title": CARD_METHOD_TITLE if is_card else payment_method,
            "set_paid": True,
            "transaction_id": charge.gateway_transaction_id,
            "date_paid": self._clock().isoformat(),
            "meta_data": [
                {"key": "_payment_processor", "value": self._gateway.name},
                {"key": "_card_last4", "value": card.last4 if card else "****"},
            ],
        }
        if customer_id:
            payload["customer_id"] = customer_id

        updated = await self._commerce.update_order(order["id"], payload)
        logger.info(
            "Payment processed",
            order_id=updated["id"],
            status=updated.get("status"),
            transaction_id=charge.gateway_transaction_id,
        )

        if session_id:
            await self._sessions.destroy(session_id)
        return payment_summary(updated)
