"""FastAPI endpoints for the Identity context: a customer's order history."""

from fastapi import APIRouter, Depends, Query

from identity.api.schemas import OrderListResponse, OrderResponse
from identity.order_history import OrderHistory
from shared.auth import required_customer_id
from shared.components import Components, get_components

router = APIRouter(prefix="/account", tags=["account"])


def get_order_history(components: Components = Depends(get_components)) -> OrderHistory:
    return OrderHistory(components.commerce)


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    status: str | None = Query(default=None),
    customer_id: int = Depends(required_customer_id),
    history: OrderHistory = Depends(get_order_history),
) -> OrderListResponse:
    data = await history.list_orders(customer_id, page=page, per_page=per_page, status=status)
    return OrderListResponse(data=data)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    customer_id: int = Depends(required_customer_id),
    history: OrderHistory = Depends(get_order_history),
) -> OrderResponse:
    order = await history.get_order(customer_id, order_id)
    return OrderResponse(data=order)
