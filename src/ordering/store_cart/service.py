"""Store-Cart pass-through with session affinity.

The Store API authenticates a guest cart with a nonce plus a cookie jar
that builds up over several responses. The service keeps both in the
session registry: every call forwards the stored jar, uses the caller's
nonce or else the last one seen, and merges whatever cookies come back.
"""

import time
from dataclasses import dataclass
from decimal import Decimal

import structlog

from ordering.cart.area import area_for, size_attribute
from ordering.cart.line_items import format_area
from sessions.store import SessionState, SessionStore
from shared.errors import ValidationError, upstream_operation
from upstream.port import StoreCartPort, StoreCartResult

logger = structlog.get_logger(__name__)


def new_session_id() -> str:
    """Millisecond timestamp, the shape storefront clients already send."""
    return str(time.time_ns() // 1_000_000)


@dataclass(frozen=True)
class StoreCartResponse:
    cart: dict
    session_id: str
    nonce: str | None = None
    m2_quantity: str | None = None


class StoreCartService:
    def __init__(self, store_cart: StoreCartPort, sessions: SessionStore) -> None:
        self._store_cart = store_cart
        self._sessions = sessions

    async def _absorb(self, session_id: str, result: StoreCartResult) -> None:
        await self._sessions.merge_cookies(session_id, result.cookies)
        if result.nonce:
            await self._sessions.set_nonce(session_id, result.nonce)

    async def _session(self, session_id: str | None) -> SessionState:
        if not session_id:
            raise ValidationError({"X-Session-Id": "Missing X-Session-Id header. Call /store/cart/nonce first."})
        return await self._sessions.get_or_create(session_id)

    def _response(self, session_id: str, result: StoreCartResult, **extra) -> StoreCartResponse:
        return StoreCartResponse(cart=result.data, session_id=session_id, nonce=result.nonce, **extra)

    async def issue_nonce(self, session_id: str | None = None) -> StoreCartResponse:
        session_id = session_id or new_session_id()
        session = await self._sessions.get_or_create(session_id)
        with upstream_operation("Failed to fetch nonce"):
            result = await self._store_cart.get_cart(None, session.cookie_header)
        await self._absorb(session_id, result)
        logger.info("Store cart nonce issued", session_id=session_id, has_nonce=bool(result.nonce))
        return self._response(session_id, result)

    async def get_cart(self, session_id: str | None, nonce: str | None = None) -> StoreCartResponse:
        session = await self._sessions.get(session_id) if session_id else None
        with upstream_operation("Failed to fetch cart"):
            result = await self._store_cart.get_cart(
                nonce or (session.nonce if session else None),
                session.cookie_header if session else "",
            )
        if session is not None:
            await self._absorb(session.session_id, result)
        return self._response(session_id or "", result)

    async def add_item(
        self,
        session_id: str | None,
        product_id: int,
        quantity: int,
        variation: list[dict] | None = None,
        m2_quantity: Decimal | None = None,
        nonce: str | None = None,
    ) -> StoreCartResponse:
        session = await self._session(session_id)

        area = m2_quantity
        if not area:
            size = size_attribute(variation)
            if size:
                try:
                    area = area_for(size, quantity)
                except ValidationError:
                    logger.info("Size attribute is not a dimension", size=size, product_id=product_id)

        with upstream_operation("Failed to add item to cart"):
            result = await self._store_cart.add_item(
                product_id,
                quantity,
                variation,
                nonce or session.nonce,
                session.cookie_header,
            )
        await self._absorb(session.session_id, result)
        logger.info("Store cart item added", session_id=session.session_id, product_id=product_id, quantity=quantity)
        return self._response(session.session_id, result, m2_quantity=format_area(area) if area else None)

    async def update_item(
        self, session_id: str | None, key: str, quantity: int, nonce: str | None = None
    ) -> StoreCartResponse:
        session = await self._session(session_id)
        with upstream_operation("Failed to update cart item"):
            result = await self._store_cart.update_item(key, quantity, nonce or session.nonce, session.cookie_header)
        await self._absorb(session.session_id, result)
        return self._response(session.session_id, result)

    async def remove_item(self, session_id: str | None, key: str, nonce: str | None = None) -> StoreCartResponse:
        session = await self._session(session_id)
        with upstream_operation("Failed to remove cart item"):
            result = await self._store_cart.remove_item(key, nonce or session.nonce, session.cookie_header)
        await self._absorb(session.session_id, result)
        return self._response(session.session_id, result)

    async def clear_cart(self, session_id: str | None, nonce: str | None = None) -> StoreCartResponse:
        """Empty the upstream cart and forget the session, bound order included."""
        session = await self._session(session_id)
        with upstream_operation("Failed to clear cart"):
            result = await self._store_cart.clear(nonce or session.nonce, session.cookie_header)
        await self._sessions.destroy(session.session_id)
        logger.info("Store cart cleared", session_id=session.session_id)
        return self._response(session.session_id, result)
