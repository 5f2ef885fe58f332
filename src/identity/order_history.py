"""A signed-in customer's own orders, read straight from the Commerce API."""

import structlog

from shared.errors import ForbiddenError, NotFoundError, UpstreamError, upstream_operation
from upstream.port import CommercePort

logger = structlog.get_logger(__name__)


class OrderHistory:
    def __init__(self, commerce: CommercePort) -> None:
        self._commerce = commerce

    async def list_orders(
        self,
        customer_id: int,
        page: int = 1,
        per_page: int = 10,
        status: str | None = None,
    ) -> dict:
        params = {"customer": customer_id, "page": page, "per_page": per_page, "orderby": "date", "order": "desc"}
        if status:
            params["status"] = status
        with upstream_operation("Failed to fetch orders"):
            result = await self._commerce.list_orders(**params)
        return {
            "orders": result.items,
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": result.total,
                "total_pages": result.total_pages,
            },
        }

    async def get_order(self, customer_id: int, order_id: int) -> dict:
        try:
            order = await self._commerce.get_order(order_id)
        except UpstreamError as exc:
            if exc.is_not_found:
                raise NotFoundError("Order not found", error=exc.payload) from exc
            raise UpstreamError(
                "Failed to fetch order",
                upstream_status=exc.upstream_status,
                payload=exc.payload,
            ) from exc

        if int(order.get("customer_id") or 0) != customer_id:
            logger.warning("Order requested by another customer", order_id=order_id, customer_id=customer_id)
            raise ForbiddenError("You do not have access to this order")
        return order
