"""FastAPI routes for the Ordering context: carts and checkout."""

from fastapi import APIRouter, Depends

from ordering.api.dependencies import (
    forwarded_nonce,
    get_cart_repository,
    get_checkout_orchestrator,
    get_reconciler,
    get_store_cart_service,
    request_context,
    session_id_header,
)
from ordering.api.schemas import (
    AddToCartRequest,
    CalculateAreaPriceRequest,
    CheckoutRequest,
    Envelope,
    OrderEnvelope,
    StoreAddItemRequest,
    StoreRemoveItemRequest,
    StoreUpdateItemRequest,
    UpdateCartItemRequest,
)
from ordering.cart.area import calculate_area_price
from ordering.cart.line_items import build_entry
from ordering.cart.pricing import cart_view
from ordering.cart.reconciliation import CartReconciler
from ordering.cart.repository import CartOrderRepository, RequestContext
from ordering.checkout.orchestrator import CheckoutDetails, CheckoutOrchestrator
from ordering.store_cart.service import StoreCartResponse, StoreCartService
from shared.auth import optional_customer_id
from shared.components import Components, get_components
from shared.errors import ValidationError, upstream_operation

# ---------------------------------------------------------------------------
# Cart Router (pending orders as carts)
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.post("/add", response_model=Envelope)
async def add_to_cart(
    body: AddToCartRequest,
    context: RequestContext = Depends(request_context),
    reconciler: CartReconciler = Depends(get_reconciler),
) -> Envelope:
    entry = build_entry(
        product_id=body.product_id,
        quantity=body.quantity,
        variation_id=body.variation_id,
        area=body.m2_quantity,
        unit_price=body.price,
        is_sample=body.is_sample,
        sku=body.sku,
        sample_type=body.sample_type,
    )
    result = await reconciler.add(entry, context, check_duplicates=body.check_duplicates)
    return Envelope(message="Item added to cart", data=result.to_dict())


@cart_router.post("/calculate-m2-price", response_model=Envelope)
async def calculate_m2_price(
    body: CalculateAreaPriceRequest,
    components: Components = Depends(get_components),
) -> Envelope:
    calculation = calculate_area_price(
        quantity=body.quantity,
        dimensions=body.dimensions,
        price_per_m2=body.price_per_m2,
        currency=components.settings.currency,
    )
    return Envelope(message="m² price calculated", data=calculation.to_dict())


@cart_router.get("", response_model=Envelope)
async def get_cart(
    customer_id: int | None = Depends(optional_customer_id),
    repository: CartOrderRepository = Depends(get_cart_repository),
) -> Envelope:
    """Pending orders as display rows; only the customer's own when authenticated."""
    with upstream_operation("Failed to fetch cart"):
        orders = await repository.pending_orders(customer_id=customer_id)
    return Envelope(
        message="Cart retrieved",
        data={"line_items": cart_view(orders), "orders_found": len(orders)},
    )


@cart_router.put("/{item_id}", response_model=Envelope)
async def update_cart_item(
    item_id: int,
    body: UpdateCartItemRequest,
    reconciler: CartReconciler = Depends(get_reconciler),
) -> Envelope:
    result = await reconciler.update(item_id, body.quantity, body.m2_quantity)
    return Envelope(message="Cart item updated", data=result.to_dict())


@cart_router.delete("/{item_id}", response_model=Envelope)
async def remove_cart_item(
    item_id: int,
    context: RequestContext = Depends(request_context),
    reconciler: CartReconciler = Depends(get_reconciler),
) -> Envelope:
    result = await reconciler.remove(item_id, context)
    return Envelope(message=result.message, data=result.to_dict())


# ---------------------------------------------------------------------------
# Store Cart Router (Store API pass-through)
# ---------------------------------------------------------------------------
store_cart_router = APIRouter(prefix="/store/cart", tags=["store-cart"])


def _store_data(response: StoreCartResponse) -> dict:
    data = {"cart": response.cart, "session_id": response.session_id, "nonce": response.nonce}
    if response.m2_quantity is not None:
        data["m2_quantity"] = response.m2_quantity
    return data


@store_cart_router.get("/nonce", response_model=Envelope)
async def issue_nonce(
    session_id: str | None = Depends(session_id_header),
    service: StoreCartService = Depends(get_store_cart_service),
) -> Envelope:
    response = await service.issue_nonce(session_id)
    return Envelope(
        message="Use this nonce and session_id in subsequent requests",
        data={"nonce": response.nonce, "session_id": response.session_id},
    )


@store_cart_router.get("", response_model=Envelope)
async def get_store_cart(
    session_id: str | None = Depends(session_id_header),
    nonce: str | None = Depends(forwarded_nonce),
    service: StoreCartService = Depends(get_store_cart_service),
) -> Envelope:
    response = await service.get_cart(session_id, nonce)
    return Envelope(message="Cart retrieved", data=_store_data(response))


@store_cart_router.post("/add-item", response_model=Envelope)
async def add_store_cart_item(
    body: StoreAddItemRequest,
    session_id: str | None = Depends(session_id_header),
    nonce: str | None = Depends(forwarded_nonce),
    service: StoreCartService = Depends(get_store_cart_service),
) -> Envelope:
    variation = [attribute.model_dump() for attribute in body.variation] if body.variation else None
    response = await service.add_item(
        session_id,
        product_id=body.id,
        quantity=body.quantity,
        variation=variation,
        m2_quantity=body.m2_quantity,
        nonce=nonce,
    )
    return Envelope(message="Item added to cart successfully", data=_store_data(response))


@store_cart_router.post("/update-item", response_model=Envelope)
async def update_store_cart_item(
    body: StoreUpdateItemRequest,
    session_id: str | None = Depends(session_id_header),
    nonce: str | None = Depends(forwarded_nonce),
    service: StoreCartService = Depends(get_store_cart_service),
) -> Envelope:
    response = await service.update_item(session_id, body.key, body.quantity, nonce)
    return Envelope(message="Cart item updated successfully", data=_store_data(response))


@store_cart_router.post("/remove-item", response_model=Envelope)
async def remove_store_cart_item(
    body: StoreRemoveItemRequest,
    session_id: str | None = Depends(session_id_header),
    nonce: str | None = Depends(forwarded_nonce),
    service: StoreCartService = Depends(get_store_cart_service),
) -> Envelope:
    response = await service.remove_item(session_id, body.key, nonce)
    return Envelope(message="Item removed from cart successfully", data=_store_data(response))


@store_cart_router.delete("", response_model=Envelope)
async def clear_store_cart(
    session_id: str | None = Depends(session_id_header),
    nonce: str | None = Depends(forwarded_nonce),
    service: StoreCartService = Depends(get_store_cart_service),
) -> Envelope:
    response = await service.clear_cart(session_id, nonce)
    return Envelope(message="Cart cleared successfully", data=_store_data(response))


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", response_model=OrderEnvelope)
async def checkout(
    body: CheckoutRequest,
    session_id: str | None = Depends(session_id_header),
    nonce: str | None = Depends(forwarded_nonce),
    context: RequestContext = Depends(request_context),
    orchestrator: CheckoutOrchestrator = Depends(get_checkout_orchestrator),
) -> OrderEnvelope:
    """Create the session's order on first call, update it on every later one.

    1. Bound session: apply the supplied fields to the bound order
    2. Otherwise: read the Store-Cart snapshot, create the order, bind it
    """
    if not session_id:
        raise ValidationError({"X-Session-Id": "Missing session ID"}, message="Missing session ID")

    details = CheckoutDetails(
        billing=body.billing.model_dump() if body.billing else None,
        shipping=body.shipping.model_dump() if body.shipping else None,
        customer_note=body.customer_note,
        shipping_lines=[line.model_dump() for line in body.shipping_lines],
    )
    result = await orchestrator.checkout(session_id, details, context, nonce=nonce)
    return OrderEnvelope(message=result.message, order=result.order)
