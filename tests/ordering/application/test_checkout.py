"""Tests for the checkout orchestrator: create once per session, update afterwards."""

import pytest
import pytest_asyncio
from ordering.checkout.orchestrator import CheckoutDetails, CheckoutOrchestrator
from ordering.store_cart.service import StoreCartService
from shared.errors import UpstreamError, ValidationError

SIZE = [{"attribute": "pa_sizemm", "value": "305x305x10"}]
BILLING = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address_1": "12 St James's Square",
    "city": "London",
    "postcode": "SW1Y 4JH",
    "country": "GB",
    "email": "ada@example.com",
}


@pytest.fixture()
def service(store_cart, sessions):
    store_cart.add_product(815, name="Calacatta Gold - 305x305x10", price_minor=3995, parent_id=812)
    store_cart.add_product(900, name="Slate Riven", price_minor=2450)
    return StoreCartService(store_cart, sessions)


@pytest.fixture()
def orchestrator(commerce, store_cart, sessions, parents):
    return CheckoutOrchestrator(commerce, store_cart, sessions, parents)


@pytest_asyncio.fixture()
async def filled_session(service):
    await service.issue_nonce("sess-1")
    await service.add_item("sess-1", product_id=815, quantity=2, variation=SIZE)
    await service.add_item("sess-1", product_id=900, quantity=1)
    return "sess-1"


class TestFirstCheckout:
    @pytest.mark.asyncio
    async def test_creates_and_binds_an_order(self, orchestrator, filled_session, commerce, sessions, request_context):
        result = await orchestrator.checkout(filled_session, CheckoutDetails(billing=BILLING), request_context)

        assert result.created is True
        assert result.message == "Order created with billing and shipping information"
        assert list(commerce.orders) == [result.order["id"]]
        assert await sessions.bound_order(filled_session) == result.order["id"]
        assert set(result.order) == {"id", "order_key", "status", "total", "currency"}

    @pytest.mark.asyncio
    async def test_variations_are_ordered_under_their_parent(
        self, orchestrator, filled_session, commerce, request_context
    ):
        await orchestrator.checkout(filled_session, CheckoutDetails(), request_context)

        tile, slate = commerce.calls_to("create_order")[0]["line_items"]
        assert tile["product_id"] == 812
        assert tile["variation_id"] == 815
        assert tile["subtotal"] == "79.90"
        assert tile["variation"] == SIZE
        assert slate == {"product_id": 900, "quantity": 1, "subtotal": "24.50", "total": "24.50"}

    @pytest.mark.asyncio
    async def test_missing_address_fields_are_sent_empty(
        self, orchestrator, filled_session, commerce, request_context
    ):
        await orchestrator.checkout(filled_session, CheckoutDetails(billing={"first_name": "Ada"}), request_context)

        billing = commerce.calls_to("create_order")[0]["billing"]
        assert len(billing) == 11
        assert billing["first_name"] == "Ada"
        assert billing["phone"] == ""

    @pytest.mark.asyncio
    async def test_shipping_lines_get_defaults(self, orchestrator, filled_session, commerce, request_context):
        details = CheckoutDetails(shipping_lines=[{"method_id": "free_shipping", "method_title": "Free"}])
        await orchestrator.checkout(filled_session, details, request_context)

        assert commerce.calls_to("create_order")[0]["shipping_lines"] == [
            {"method_id": "free_shipping", "method_title": "Free", "total": "0", "instance_id": 0}
        ]

    @pytest.mark.asyncio
    async def test_parent_looked_up_when_extensions_lack_it(
        self, orchestrator, service, store_cart, commerce, request_context
    ):
        store_cart.add_product(950, name="Terracotta - 200x200", price_minor=1000)
        commerce.add_product(950, parent_id=940)
        await service.issue_nonce("sess-2")
        await service.add_item(
            "sess-2", product_id=950, quantity=1, variation=[{"attribute": "pa_sizemm", "value": "200x200"}]
        )

        await orchestrator.checkout("sess-2", CheckoutDetails(), request_context)

        [line] = commerce.calls_to("create_order")[0]["line_items"]
        assert (line["product_id"], line["variation_id"]) == (940, 950)

    @pytest.mark.asyncio
    async def test_session_without_cookies_is_rejected(self, orchestrator, sessions, request_context):
        await sessions.get_or_create("sess-empty")
        with pytest.raises(ValidationError) as exc:
            await orchestrator.checkout("sess-empty", CheckoutDetails(), request_context)
        assert exc.value.message == "Invalid or expired cart session"

    @pytest.mark.asyncio
    async def test_unknown_session_is_rejected(self, orchestrator, request_context):
        with pytest.raises(ValidationError):
            await orchestrator.checkout("sess-unknown", CheckoutDetails(), request_context)

    @pytest.mark.asyncio
    async def test_empty_cart_is_rejected(self, orchestrator, service, commerce, request_context):
        await service.issue_nonce("sess-1")
        with pytest.raises(ValidationError) as exc:
            await orchestrator.checkout("sess-1", CheckoutDetails(), request_context)
        assert exc.value.message == "Cart is empty"
        assert commerce.orders == {}

    @pytest.mark.asyncio
    async def test_failed_create_leaves_the_session_unbound(
        self, orchestrator, filled_session, commerce, sessions, request_context
    ):
        commerce.fail_next("create_order", status=500)
        with pytest.raises(UpstreamError) as exc:
            await orchestrator.checkout(filled_session, CheckoutDetails(), request_context)
        assert exc.value.message == "Failed to process checkout"
        assert await sessions.bound_order(filled_session) is None


class TestRepeatedCheckout:
    @pytest.mark.asyncio
    async def test_second_call_updates_the_bound_order(
        self, orchestrator, filled_session, commerce, store_cart, request_context
    ):
        first = await orchestrator.checkout(filled_session, CheckoutDetails(billing=BILLING), request_context)
        cart_reads = len(store_cart.calls_to("get_cart"))

        second = await orchestrator.checkout(
            filled_session,
            CheckoutDetails(shipping={"first_name": "Ada", "city": "Bath"}, customer_note="Leave by the gate"),
            request_context,
        )

        assert second.created is False
        assert second.message == "Order updated with new information"
        assert second.order["id"] == first.order["id"]
        assert len(commerce.calls_to("create_order")) == 1
        assert len(store_cart.calls_to("get_cart")) == cart_reads

        order_id, payload = commerce.calls_to("update_order")[0]
        assert order_id == first.order["id"]
        assert set(payload) == {"shipping", "customer_note"}
        assert commerce.orders[order_id]["customer_note"] == "Leave by the gate"

    @pytest.mark.asyncio
    async def test_cart_changes_after_binding_are_not_picked_up(
        self, orchestrator, filled_session, service, commerce, request_context
    ):
        first = await orchestrator.checkout(filled_session, CheckoutDetails(), request_context)
        await service.add_item(filled_session, product_id=900, quantity=5)

        await orchestrator.checkout(filled_session, CheckoutDetails(billing=BILLING), request_context)

        assert len(commerce.orders[first.order["id"]]["line_items"]) == 2
        assert commerce.orders[first.order["id"]]["line_items"][1]["quantity"] == 1
