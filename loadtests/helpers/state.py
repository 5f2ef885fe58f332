"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state, with no cross-user
sharing. State tracks the ids and credentials returned by earlier calls so
follow-up operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class CartState:
    """Tracks state for a legacy cart (pending order) lifecycle."""

    order_id: int | None = None
    item_ids: list[int] = field(default_factory=list)
    item_count: int = 0


@dataclass
class StoreCartState:
    """Tracks the session registry handle and Store API credentials."""

    session_id: str | None = None
    nonce: str | None = None
    item_keys: list[str] = field(default_factory=list)

    def headers(self) -> dict:
        headers = {}
        if self.session_id:
            headers["X-Session-Id"] = self.session_id
        if self.nonce:
            headers["Nonce"] = self.nonce
        return headers

    def absorb(self, data: dict) -> None:
        """Keep the session id and nonce the gateway answered with."""
        self.session_id = data.get("session_id") or self.session_id
        self.nonce = data.get("nonce") or self.nonce


@dataclass
class CheckoutState:
    """Tracks a store cart through checkout and payment."""

    store_cart: StoreCartState = field(default_factory=StoreCartState)
    order_id: int | None = None
    current_status: str = "pending"
