"""Upstream ports (abstract interfaces).

Defines the contracts for the two remote APIs the gateway talks to: the
Commerce REST API (orders, products) and the session-oriented Store-Cart
API. This enables swapping between the fake adapters (dev/test) and the
WooCommerce adapters (production) without touching the cart or checkout
code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Page:
    """One page of a collection listing plus the upstream pagination headers."""

    items: list[dict]
    total: int = 0
    total_pages: int = 0


@dataclass(frozen=True)
class StoreCartResult:
    """Result of a Store-Cart call.

    ``cookies`` holds the name/value pairs of every ``Set-Cookie`` header in
    the response (``None`` for a cookie the response expires), ``nonce`` the
    rotated nonce when the upstream sent one.
    """

    data: Any
    nonce: str | None = None
    cookies: dict[str, str | None] = field(default_factory=dict)


class CommercePort(ABC):
    """Authenticated Commerce REST API."""

    @abstractmethod
    async def list_orders(self, **params: Any) -> Page:
        """List orders (``status``, ``customer``, ``per_page``, ``page``, ``orderby``, ``order``)."""
        ...

    @abstractmethod
    async def get_order(self, order_id: int) -> dict:
        ...

    @abstractmethod
    async def create_order(self, payload: dict) -> dict:
        ...

    @abstractmethod
    async def update_order(self, order_id: int, payload: dict) -> dict:
        ...

    @abstractmethod
    async def delete_order(self, order_id: int) -> dict:
        """Permanently delete an order (bypassing the trash)."""
        ...

    @abstractmethod
    async def get_product(self, product_id: int) -> dict:
        """Fetch a product or variation; variations report their ``parent_id``."""
        ...

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""


class StoreCartPort(ABC):
    """Session-oriented cart API authenticated by nonce and cookies."""

    @abstractmethod
    async def get_cart(self, nonce: str | None, cookie_header: str) -> StoreCartResult:
        ...

    @abstractmethod
    async def add_item(
        self,
        product_id: int,
        quantity: int,
        variation: list[dict] | None,
        nonce: str | None,
        cookie_header: str,
    ) -> StoreCartResult:
        ...

    @abstractmethod
    async def update_item(self, key: str, quantity: int, nonce: str | None, cookie_header: str) -> StoreCartResult:
        ...

    @abstractmethod
    async def remove_item(self, key: str, nonce: str | None, cookie_header: str) -> StoreCartResult:
        ...

    @abstractmethod
    async def clear(self, nonce: str | None, cookie_header: str) -> StoreCartResult:
        ...

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
