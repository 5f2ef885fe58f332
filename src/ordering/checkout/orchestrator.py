"""Checkout: turning a Store-Cart session into one Commerce order.

Per session the orchestrator moves from *no order* to *order created* and
then stays there: the first checkout call reads the Store-Cart snapshot,
creates an order and binds it to the session; every later call for that
session only applies the supplied billing, shipping, note and shipping
lines to the bound order. The cart is not re-read and no second order is
created.
"""

from dataclasses import dataclass, field

import structlog

from ordering.cart.repository import RequestContext
from ordering.cart.variations import ParentResolver
from ordering.checkout.mapping import map_cart_items, order_fields
from sessions.store import SessionStore
from shared.errors import ValidationError, upstream_operation
from upstream.port import CommercePort, StoreCartPort

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutDetails:
    billing: dict | None = None
    shipping: dict | None = None
    customer_note: str | None = None
    shipping_lines: list[dict] = field(default_factory=list)

    def order_fields(self) -> dict:
        return order_fields(self.billing, self.shipping, self.customer_note, self.shipping_lines)


@dataclass(frozen=True)
class CheckoutResult:
    order: dict
    created: bool

    @property
    def message(self) -> str:
        if self.created:
            return "Order created with billing and shipping information"
        return "Order updated with new information"


def order_summary(order: dict) -> dict:
    return {key: order.get(key) for key in ("id", "order_key", "status", "total", "currency")}


class CheckoutOrchestrator:
    def __init__(
        self,
        commerce: CommercePort,
        store_cart: StoreCartPort,
        sessions: SessionStore,
        parents: ParentResolver,
    ) -> None:
        self._commerce = commerce
        self._store_cart = store_cart
        self._sessions = sessions
        self._parents = parents

    async def checkout(
        self,
        session_id: str,
        details: CheckoutDetails,
        context: RequestContext,
        nonce: str | None = None,
    ) -> CheckoutResult:
        with upstream_operation("Failed to process checkout"):
            bound_order_id = await self._sessions.bound_order(session_id)
            if bound_order_id is not None:
                return await self._update(session_id, bound_order_id, details)
            return await self._create(session_id, details, context, nonce)

    async def _update(self, session_id: str, order_id: int, details: CheckoutDetails) -> CheckoutResult:
        fields = details.order_fields()
        logger.info(
            "Updating bound checkout order",
            session_id=session_id,
            order_id=order_id,
            fields=sorted(fields),
        )
        order = await self._commerce.update_order(order_id, fields)
        return CheckoutResult(order=order_summary(order), created=False)

    async def _create(
        self,
        session_id: str,
        details: CheckoutDetails,
        context: RequestContext,
        nonce: str | None,
    ) -> CheckoutResult:
        session = await self._sessions.get(session_id)
        if session is None or not session.has_cookies:
            raise ValidationError(
                {"session": "Invalid or expired cart session"},
                message="Invalid or expired cart session",
            )

        result = await self._store_cart.get_cart(nonce or session.nonce, session.cookie_header)
        await self._sessions.merge_cookies(session_id, result.cookies)
        if result.nonce:
            await self._sessions.set_nonce(session_id, result.nonce)

        items = (result.data or {}).get("items") or []
        if not items:
            raise ValidationError({"cart": "Cart is empty"}, message="Cart is empty")

        payload = {
            "status": "pending",
            "created_via": "checkout",
            "customer_ip_address": context.ip_address,
            "customer_user_agent": context.user_agent,
            "line_items": await map_cart_items(items, self._parents),
            **details.order_fields(),
        }
        if context.customer_id:
            payload["customer_id"] = context.customer_id

        order = await self._commerce.create_order(payload)
        bound = await self._sessions.bind_order(session_id, order["id"])
        if bound != order["id"]:
            logger.warning(
                "Session was bound by a concurrent checkout",
                session_id=session_id,
                order_id=order["id"],
                bound_order_id=bound,
            )
        logger.info("Checkout order created", session_id=session_id, order_id=order["id"], item_count=len(items))
        return CheckoutResult(order=order_summary(order), created=True)
