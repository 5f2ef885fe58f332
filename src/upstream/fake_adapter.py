"""In-memory fakes of the Commerce and Store-Cart APIs for development and testing.

These adapters simulate the upstream without any network calls. They can be
told to fail the next call of a given operation, making them useful for:
- Exercising the create-before-delete ordering of cart replacement
- Running the gateway locally without WooCommerce credentials
- Automated tests with predictable ids and totals
"""

import itertools
from collections import defaultdict
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from uuid import uuid4

from shared.errors import UpstreamError
from upstream.cookies import parse_cookie_header
from upstream.port import CommercePort, Page, StoreCartPort, StoreCartResult

CENTS = Decimal("0.01")


def _money(value: Any) -> Decimal:
    try:
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")


class _FailureInjection:
    def __init__(self) -> None:
        self._failures: dict[str, list[UpstreamError]] = defaultdict(list)
        self.calls: list[tuple[str, Any]] = []

    def fail_next(self, operation: str, status: int = 500, payload: Any = None, proxied: bool = False) -> None:
        """Make the next call to ``operation`` raise an ``UpstreamError``."""
        self._failures[operation].append(
            UpstreamError(
                f"Simulated {operation} failure",
                upstream_status=status,
                payload=payload or {"code": "simulated_failure", "message": f"{operation} failed"},
                proxied=proxied,
            )
        )

    def _record(self, operation: str, argument: Any = None) -> None:
        self.calls.append((operation, argument))
        if self._failures[operation]:
            raise self._failures[operation].pop(0)

    def calls_to(self, operation: str) -> list[Any]:
        return [argument for name, argument in self.calls if name == operation]


class FakeCommerce(_FailureInjection, CommercePort):
    """Configurable in-memory Commerce API.

    Orders get sequential ids and are listed newest first. Line subtotals
    that the caller does not supply are recomputed from the product price,
    the way the real upstream recalculates them.
    """

    def __init__(self, currency: str = "GBP") -> None:
        super().__init__()
        self.currency = currency
        self.orders: dict[int, dict] = {}
        self.products: dict[int, dict] = {}
        self._order_ids = itertools.count(1001)
        self._item_ids = itertools.count(1)
        self._meta_ids = itertools.count(1)
        self._sequence = itertools.count(1)

    # -------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------
    def add_product(
        self,
        product_id: int,
        name: str = "",
        price: str = "0.00",
        sku: str = "",
        parent_id: int = 0,
    ) -> dict:
        product = {
            "id": product_id,
            "name": name or f"Product {product_id}",
            "price": price,
            "sku": sku,
            "parent_id": parent_id,
        }
        self.products[product_id] = product
        return product

    def seed_order(self, line_items: list[dict], status: str = "pending", customer_id: int = 0) -> dict:
        """Store an order directly, bypassing call recording and failure injection."""
        return self._store_order({"line_items": line_items, "status": status, "customer_id": customer_id})

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _line_item(self, raw: dict) -> dict:
        product_id = int(raw.get("product_id") or 0)
        variation_id = int(raw.get("variation_id") or 0)
        product = self.products.get(variation_id) or self.products.get(product_id) or {}
        quantity = int(raw.get("quantity") or 0)
        price = raw.get("price", product.get("price", "0"))
        subtotal = raw.get("subtotal")
        if subtotal is None:
            subtotal = _money(price) * quantity
        total = raw.get("total", subtotal)
        return {
            "id": raw.get("id") or next(self._item_ids),
            "name": raw.get("name") or product.get("name") or f"Product {product_id}",
            "product_id": product_id,
            "variation_id": variation_id,
            "quantity": quantity,
            "sku": raw.get("sku", product.get("sku", "")),
            "price": float(_money(price)),
            "subtotal": str(_money(subtotal)),
            "total": str(_money(total)),
            "meta_data": [
                {"id": meta.get("id") or next(self._meta_ids), "key": meta["key"], "value": meta["value"]}
                for meta in raw.get("meta_data") or []
            ],
        }

    def _store_order(self, payload: dict) -> dict:
        order_id = next(self._order_ids)
        order = {
            "id": order_id,
            "order_key": f"wc_order_{uuid4().hex[:13]}",
            "status": payload.get("status", "pending"),
            "currency": self.currency,
            "customer_id": int(payload.get("customer_id") or 0),
            "date_created": datetime.now(UTC).isoformat(),
            "_sequence": next(self._sequence),
            "billing": payload.get("billing", {}),
            "shipping": payload.get("shipping", {}),
            "customer_note": payload.get("customer_note", ""),
            "shipping_lines": payload.get("shipping_lines", []),
            "meta_data": payload.get("meta_data", []),
            "line_items": [self._line_item(item) for item in payload.get("line_items", [])],
        }
        for key in (
            "payment_method",
            "payment_method_title",
            "created_via",
            "customer_ip_address",
            "customer_user_agent",
        ):
            if key in payload:
                order[key] = payload[key]
        self._recalculate(order)
        self.orders[order_id] = order
        return self._public(order)

    def _recalculate(self, order: dict) -> None:
        items_total = sum((_money(item["total"]) for item in order["line_items"]), Decimal("0.00"))
        shipping_total = sum((_money(line.get("total", "0")) for line in order["shipping_lines"]), Decimal("0.00"))
        order["total"] = str(items_total + shipping_total)

    @staticmethod
    def _public(order: dict) -> dict:
        return {key: value for key, value in order.items() if not key.startswith("_")}

    def _existing(self, order_id: int) -> dict:
        order = self.orders.get(int(order_id))
        if order is None:
            raise UpstreamError(
                f"Order {order_id} not found",
                upstream_status=404,
                payload={"code": "woocommerce_rest_shop_order_invalid_id", "message": "Invalid ID."},
            )
        return order

    # -------------------------------------------------------------------
    # CommercePort
    # -------------------------------------------------------------------
    async def list_orders(self, **params: Any) -> Page:
        self._record("list_orders", params)
        orders = sorted(self.orders.values(), key=lambda order: order["_sequence"], reverse=True)
        if params.get("order") == "asc":
            orders.reverse()
        if params.get("status"):
            orders = [order for order in orders if order["status"] == params["status"]]
        if params.get("customer"):
            orders = [order for order in orders if order["customer_id"] == int(params["customer"])]

        per_page = int(params.get("per_page") or 10)
        page = int(params.get("page") or 1)
        start = (page - 1) * per_page
        total = len(orders)
        return Page(
            items=[self._public(order) for order in orders[start : start + per_page]],
            total=total,
            total_pages=(total + per_page - 1) // per_page,
        )

    async def get_order(self, order_id: int) -> dict:
        self._record("get_order", order_id)
        return self._public(self._existing(order_id))

    async def create_order(self, payload: dict) -> dict:
        self._record("create_order", payload)
        return self._store_order(payload)

    async def update_order(self, order_id: int, payload: dict) -> dict:
        self._record("update_order", (order_id, payload))
        order = self._existing(order_id)
        for key, value in payload.items():
            if key == "line_items":
                continue
            if key == "meta_data":
                order["meta_data"] = order["meta_data"] + list(value)
            elif key in ("billing", "shipping") and isinstance(value, dict):
                order[key] = {**order.get(key, {}), **value}
            else:
                order[key] = value
        # Line items carrying an id update that item, the rest are appended.
        for raw in payload.get("line_items", []):
            position = next(
                (index for index, item in enumerate(order["line_items"]) if raw.get("id") and item["id"] == raw["id"]),
                None,
            )
            if position is None:
                order["line_items"].append(self._line_item(raw))
            else:
                merged = {**order["line_items"][position], **raw}
                # Partial updates get their totals recalculated from the unit price
                if "subtotal" not in raw:
                    merged.pop("subtotal", None)
                    merged.pop("total", None)
                order["line_items"][position] = self._line_item(merged)
        self._recalculate(order)
        return self._public(order)

    async def delete_order(self, order_id: int) -> dict:
        self._record("delete_order", order_id)
        order = self._existing(order_id)
        del self.orders[order["id"]]
        return self._public(order)

    async def get_product(self, product_id: int) -> dict:
        self._record("get_product", product_id)
        product = self.products.get(int(product_id))
        if product is None:
            raise UpstreamError(
                f"Product {product_id} not found",
                upstream_status=404,
                payload={"code": "woocommerce_rest_product_invalid_id", "message": "Invalid ID."},
            )
        return dict(product)


class FakeStoreCart(_FailureInjection, StoreCartPort):
    """In-memory Store API keyed by the ``wc_cart_token`` cookie.

    Every response rotates the nonce. The cart token cookie is set on the
    first call of a session and ``woocommerce_items_in_cart`` only once an
    item has been added, so the full jar builds up over several responses.
    """

    CART_COOKIE = "wc_cart_token"

    def __init__(self, currency: str = "GBP") -> None:
        super().__init__()
        self.currency = currency
        self.carts: dict[str, list[dict]] = {}
        self.products: dict[int, dict] = {}
        self.issued_nonces: list[str] = []
        self._nonces = itertools.count(1)

    def add_product(
        self,
        product_id: int,
        name: str = "",
        price_minor: int = 0,
        parent_id: int | None = None,
    ) -> dict:
        product = {
            "id": product_id,
            "name": name or f"Product {product_id}",
            "price": price_minor,
            "parent_id": parent_id,
        }
        self.products[product_id] = product
        return product

    def _nonce(self) -> str:
        nonce = f"nonce-{next(self._nonces)}"
        self.issued_nonces.append(nonce)
        return nonce

    def _session(self, cookie_header: str) -> tuple[str, dict[str, str]]:
        token = parse_cookie_header(cookie_header).get(self.CART_COOKIE)
        if token and token in self.carts:
            return token, {}
        token = uuid4().hex
        self.carts[token] = []
        return token, {self.CART_COOKIE: token}

    def _require_nonce(self, nonce: str | None) -> None:
        if not nonce or nonce not in self.issued_nonces:
            raise UpstreamError(
                "Missing the Nonce header. This endpoint requires a valid nonce.",
                upstream_status=401,
                payload={"code": "woocommerce_rest_missing_nonce", "message": "Missing the Nonce header."},
                proxied=True,
            )

    def _snapshot(self, token: str) -> dict:
        items = self.carts[token]
        total = sum(int(item["totals"]["line_total"]) for item in items)
        return {
            "items": [dict(item) for item in items],
            "items_count": sum(item["quantity"] for item in items),
            "totals": {
                "total_items": str(total),
                "total_price": str(total),
                "currency_code": self.currency,
                "currency_minor_unit": 2,
            },
        }

    def _result(self, token: str, cookies: dict[str, str]) -> StoreCartResult:
        return StoreCartResult(data=self._snapshot(token), nonce=self._nonce(), cookies=cookies)

    async def get_cart(self, nonce: str | None, cookie_header: str) -> StoreCartResult:
        self._record("get_cart", cookie_header)
        token, cookies = self._session(cookie_header)
        return self._result(token, cookies)

    async def add_item(
        self,
        product_id: int,
        quantity: int,
        variation: list[dict] | None,
        nonce: str | None,
        cookie_header: str,
    ) -> StoreCartResult:
        self._record("add_item", {"id": product_id, "quantity": quantity, "variation": variation})
        self._require_nonce(nonce)
        product = self.products.get(product_id)
        if product is None:
            raise UpstreamError(
                "No product found with the provided ID.",
                upstream_status=400,
                payload={
                    "code": "woocommerce_rest_cart_invalid_product",
                    "message": "No product found with the provided ID.",
                },
                proxied=True,
            )
        token, cookies = self._session(cookie_header)
        cart = self.carts[token]
        existing = next((item for item in cart if item["id"] == product_id), None)
        if existing is None:
            existing = {
                "key": uuid4().hex,
                "id": product_id,
                "name": product["name"],
                "quantity": 0,
                "prices": {"price": str(product["price"]), "currency_minor_unit": 2},
                "totals": {},
                "variation": list(variation or []),
                "item_data": [],
                "extensions": {"parent_id": product["parent_id"]} if product["parent_id"] else {},
            }
            cart.append(existing)
        existing["quantity"] += quantity
        self._retotal(existing)
        cookies["woocommerce_items_in_cart"] = "1"
        return self._result(token, cookies)

    @staticmethod
    def _retotal(item: dict) -> None:
        line_minor = int(item["prices"]["price"]) * item["quantity"]
        item["totals"] = {
            "line_subtotal": str(line_minor),
            "line_total": str(line_minor),
        }

    def _find(self, token: str, key: str) -> dict:
        item = next((item for item in self.carts[token] if item["key"] == key), None)
        if item is None:
            raise UpstreamError(
                "Cart item does not exist.",
                upstream_status=409,
                payload={"code": "woocommerce_rest_cart_invalid_key", "message": "Cart item does not exist."},
                proxied=True,
            )
        return item

    async def update_item(self, key: str, quantity: int, nonce: str | None, cookie_header: str) -> StoreCartResult:
        self._record("update_item", {"key": key, "quantity": quantity})
        self._require_nonce(nonce)
        token, cookies = self._session(cookie_header)
        item = self._find(token, key)
        item["quantity"] = quantity
        self._retotal(item)
        return self._result(token, cookies)

    async def remove_item(self, key: str, nonce: str | None, cookie_header: str) -> StoreCartResult:
        self._record("remove_item", {"key": key})
        self._require_nonce(nonce)
        token, cookies = self._session(cookie_header)
        item = self._find(token, key)
        self.carts[token].remove(item)
        return self._result(token, cookies)

    async def clear(self, nonce: str | None, cookie_header: str) -> StoreCartResult:
        self._record("clear", cookie_header)
        self._require_nonce(nonce)
        token, cookies = self._session(cookie_header)
        self.carts[token] = []
        return self._result(token, cookies)
