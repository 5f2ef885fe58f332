"""Pending orders used as carts.

Every access to the cart-as-order representation goes through
``CartOrderRepository`` so that the replace-and-delete sequence lives in one
place: the replacement is created first and the old order is deleted only
once that succeeded. A failed delete leaves the old order behind as a
harmless duplicate, which the next duplicate scan passes over in favour of
the newest order.
"""

from dataclasses import dataclass

import structlog

from shared.errors import NotFoundError, UpstreamError
from upstream.port import CommercePort

logger = structlog.get_logger(__name__)

PENDING = "pending"
PAYMENT_METHOD = "bacs"
PAYMENT_METHOD_TITLE = "Direct Bank Transfer"


@dataclass(frozen=True)
class RequestContext:
    """Who is asking: recorded on every order the cart path writes."""

    ip_address: str = ""
    user_agent: str = ""
    customer_id: int | None = None


class CartOrderRepository:
    def __init__(self, commerce: CommercePort, scan_limit: int = 10) -> None:
        self._commerce = commerce
        self._scan_limit = scan_limit

    @staticmethod
    def order_payload(
        line_items: list[dict],
        context: RequestContext,
        customer_id: int | None = None,
        preserve_customer: bool = False,
    ) -> dict:
        """Payload for a pending cart order.

        The order belongs to ``customer_id``, else to the caller. With
        ``preserve_customer`` it belongs to ``customer_id`` alone, so a guest
        order stays a guest order whoever rebuilds it.
        """
        payload = {
            "payment_method": PAYMENT_METHOD,
            "payment_method_title": PAYMENT_METHOD_TITLE,
            "status": PENDING,
            "line_items": line_items,
            "created_via": "checkout",
            "customer_ip_address": context.ip_address,
            "customer_user_agent": context.user_agent,
        }
        if not preserve_customer:
            customer_id = customer_id or context.customer_id
        if customer_id:
            payload["customer_id"] = customer_id
        return payload

    async def pending_orders(self, customer_id: int | None = None) -> list[dict]:
        """Newest pending orders first, optionally only one customer's."""
        params = {"status": PENDING, "per_page": self._scan_limit, "orderby": "date", "order": "desc"}
        if customer_id:
            params["customer"] = customer_id
        page = await self._commerce.list_orders(**params)
        return page.items

    @staticmethod
    def select_cart_order(orders: list[dict], customer_id: int | None = None) -> dict | None:
        """The customer's first pending order, else the most recent one."""
        if not orders:
            return None
        if customer_id:
            owned = next((order for order in orders if order.get("customer_id") == customer_id), None)
            if owned is not None:
                return owned
        return orders[0]

    async def find_order_containing(self, item_id: int) -> tuple[dict, dict] | None:
        for order in await self.pending_orders():
            for item in order.get("line_items") or []:
                if item.get("id") == item_id:
                    return order, item
        return None

    async def get_cart_order(self, order_id: int) -> dict:
        try:
            return await self._commerce.get_order(order_id)
        except UpstreamError as exc:
            if exc.is_not_found:
                raise NotFoundError("Item not found in cart", error=exc.payload) from exc
            raise

    async def create_cart_order(
        self,
        line_items: list[dict],
        context: RequestContext,
        customer_id: int | None = None,
        preserve_customer: bool = False,
    ) -> dict:
        payload = self.order_payload(line_items, context, customer_id, preserve_customer)
        order = await self._commerce.create_order(payload)
        logger.info("Cart order created", order_id=order["id"], item_count=len(line_items))
        return order

    async def replace_cart_order(
        self,
        old_order: dict,
        line_items: list[dict],
        context: RequestContext,
        customer_id: int | None = None,
        preserve_customer: bool = False,
    ) -> dict:
        """Create an order holding ``line_items``, then delete ``old_order``.

        A failed create propagates and leaves ``old_order`` untouched. A
        failed delete is logged and the new order is still returned.
        """
        new_order = await self.create_cart_order(line_items, context, customer_id, preserve_customer)
        try:
            await self._commerce.delete_order(old_order["id"])
        except UpstreamError as exc:
            logger.warning(
                "Replaced cart order could not be deleted",
                old_order_id=old_order["id"],
                new_order_id=new_order["id"],
                upstream_status=exc.upstream_status,
            )
        else:
            logger.info("Cart order replaced", old_order_id=old_order["id"], new_order_id=new_order["id"])
        return new_order

    async def update_line_items(self, order_id: int, line_items: list[dict]) -> dict:
        order = await self._commerce.update_order(order_id, {"line_items": line_items})
        logger.info("Cart order updated in place", order_id=order_id, item_count=len(line_items))
        return order

    async def delete_cart_order(self, order_id: int) -> dict:
        order = await self._commerce.delete_order(order_id)
        logger.info("Cart order deleted", order_id=order_id)
        return order
