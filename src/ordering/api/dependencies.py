"""FastAPI dependencies wiring the Ordering services to the shared components."""

from fastapi import Depends, Header, Request

from ordering.cart.reconciliation import CartReconciler
from ordering.cart.repository import CartOrderRepository, RequestContext
from ordering.cart.variations import ParentResolver
from ordering.checkout.orchestrator import CheckoutOrchestrator
from ordering.store_cart.service import StoreCartService
from shared.auth import optional_customer_id
from shared.components import Components, get_components


def request_context(request: Request, customer_id: int | None = Depends(optional_customer_id)) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", ""),
        customer_id=customer_id,
    )


def forwarded_nonce(
    nonce: str | None = Header(default=None),
    x_wc_store_api_nonce: str | None = Header(default=None),
) -> str | None:
    return nonce or x_wc_store_api_nonce


def session_id_header(x_session_id: str | None = Header(default=None)) -> str | None:
    return x_session_id or None


def get_parent_resolver(components: Components = Depends(get_components)) -> ParentResolver:
    return ParentResolver(components.commerce, components.parent_cache)


def get_cart_repository(components: Components = Depends(get_components)) -> CartOrderRepository:
    return CartOrderRepository(components.commerce, scan_limit=components.settings.cart.scan_limit)


def get_reconciler(
    repository: CartOrderRepository = Depends(get_cart_repository),
    parents: ParentResolver = Depends(get_parent_resolver),
) -> CartReconciler:
    return CartReconciler(repository, parents)


def get_store_cart_service(components: Components = Depends(get_components)) -> StoreCartService:
    return StoreCartService(components.store_cart, components.sessions)


def get_checkout_orchestrator(
    components: Components = Depends(get_components),
    parents: ParentResolver = Depends(get_parent_resolver),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(components.commerce, components.store_cart, components.sessions, parents)
