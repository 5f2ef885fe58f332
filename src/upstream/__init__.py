"""Upstream adapter factory.

``commerce.backend`` selects the implementation:
- ``fake``: in-memory FakeCommerce / FakeStoreCart for development and testing
- ``woocommerce``: httpx clients against a real WooCommerce site
"""

from shared.config import CommerceSettings
from upstream.fake_adapter import FakeCommerce, FakeStoreCart
from upstream.port import CommercePort, StoreCartPort
from upstream.woocommerce_adapter import StoreApiClient, WooCommerceClient


def build_upstreams(settings: CommerceSettings, currency: str = "GBP") -> tuple[CommercePort, StoreCartPort]:
    """Return the (commerce, store cart) adapter pair for the configured backend."""
    if settings.backend == "fake":
        return FakeCommerce(currency=currency), FakeStoreCart(currency=currency)
    if settings.backend == "woocommerce":
        return WooCommerceClient(settings), StoreApiClient(settings)
    raise ValueError(f"Unknown commerce backend: {settings.backend}")
