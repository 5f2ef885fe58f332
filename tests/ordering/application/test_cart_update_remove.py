"""Tests for updating and removing cart line items."""

from decimal import Decimal

import pytest
from ordering.cart.line_items import meta_value
from ordering.cart.reconciliation import CartReconciler
from ordering.cart.repository import CartOrderRepository, RequestContext
from shared.errors import NotFoundError, UpstreamError, ValidationError


@pytest.fixture()
def reconciler(commerce, parents):
    return CartReconciler(CartOrderRepository(commerce), parents)


def _tile_line(product_id=812, variation_id=815, quantity=2, area="1.500"):
    return {
        "product_id": product_id,
        "variation_id": variation_id,
        "quantity": quantity,
        "price": "20.00",
        "subtotal": "30.00",
        "total": "30.00",
        "meta_data": [{"key": "_m2_quantity", "value": area}],
    }


class TestUpdate:
    @pytest.mark.asyncio
    async def test_deltas_are_added_in_place(self, reconciler, commerce):
        order = commerce.seed_order([_tile_line()])

        result = await reconciler.update(order["id"], 1, Decimal("0.500"))

        assert result.order_id == order["id"]
        assert commerce.calls_to("create_order") == []
        [item] = commerce.orders[order["id"]]["line_items"]
        assert item["quantity"] == 3
        assert meta_value(item, "_m2_quantity") == "2.000"
        assert item["subtotal"] == "40.00"

    @pytest.mark.asyncio
    async def test_update_keeps_the_line_item_and_meta_ids(self, reconciler, commerce):
        order = commerce.seed_order([_tile_line()])
        existing = order["line_items"][0]

        await reconciler.update(order["id"], 1, Decimal("0.5"))

        order_id, payload = commerce.calls_to("update_order")[0]
        [line_item] = payload["line_items"]
        assert order_id == order["id"]
        assert line_item["id"] == existing["id"]
        assert line_item["meta_data"][0]["id"] == existing["meta_data"][0]["id"]

    @pytest.mark.asyncio
    async def test_negative_delta_lowers_quantity(self, reconciler, commerce):
        order = commerce.seed_order([_tile_line(quantity=3)])

        result = await reconciler.update(order["id"], -2)

        assert result.line_items[0]["quantity"] == 1
        assert meta_value(result.line_items[0], "_m2_quantity") == "1.500"

    @pytest.mark.asyncio
    async def test_quantity_below_one_is_rejected(self, reconciler, commerce):
        order = commerce.seed_order([_tile_line(quantity=2)])

        with pytest.raises(ValidationError) as exc:
            await reconciler.update(order["id"], -2)

        assert "quantity" in exc.value.errors
        assert commerce.calls_to("update_order") == []

    @pytest.mark.asyncio
    async def test_area_added_to_an_item_without_area(self, reconciler, commerce):
        line = _tile_line()
        line["meta_data"] = []
        order = commerce.seed_order([line])

        result = await reconciler.update(order["id"], 0, Decimal("0.75"))

        assert meta_value(result.line_items[0], "_m2_quantity") == "0.750"
        assert result.line_items[0]["subtotal"] == "15.00"

    @pytest.mark.asyncio
    async def test_unknown_order_is_not_found(self, reconciler):
        with pytest.raises(NotFoundError) as exc:
            await reconciler.update(999, 1)
        assert exc.value.message == "Item not found in cart"

    @pytest.mark.asyncio
    async def test_order_without_items_is_not_found(self, reconciler, commerce):
        order = commerce.seed_order([])
        with pytest.raises(NotFoundError):
            await reconciler.update(order["id"], 1)

    @pytest.mark.asyncio
    async def test_upstream_failure_is_reported_under_the_operation(self, reconciler, commerce):
        order = commerce.seed_order([_tile_line()])
        commerce.fail_next("update_order", status=500)

        with pytest.raises(UpstreamError) as exc:
            await reconciler.update(order["id"], 1)

        assert exc.value.message == "Failed to update cart item"
        assert exc.value.status_code == 500


class TestRemove:
    @pytest.mark.asyncio
    async def test_removing_one_of_several_items_rebuilds_the_order(self, reconciler, commerce, request_context):
        order = commerce.seed_order([_tile_line(), _tile_line(product_id=900, variation_id=901)], customer_id=77)
        removed_id = order["line_items"][0]["id"]

        result = await reconciler.remove(removed_id, request_context)

        assert result.removed_from == order["id"]
        assert result.order_deleted is False
        assert order["id"] not in commerce.orders
        new_order = commerce.orders[result.new_order_id]
        assert [item["product_id"] for item in new_order["line_items"]] == [900]
        assert new_order["customer_id"] == 77
        assert result.message == "Item removed from cart"

    @pytest.mark.asyncio
    async def test_removing_from_a_guest_order_keeps_it_a_guest_order(self, reconciler, commerce):
        order = commerce.seed_order([_tile_line(), _tile_line(product_id=900, variation_id=901)])
        signed_in = RequestContext(ip_address="203.0.113.7", user_agent="pytest-agent", customer_id=77)

        result = await reconciler.remove(order["line_items"][0]["id"], signed_in)

        assert "customer_id" not in commerce.calls_to("create_order")[0]
        assert commerce.orders[result.new_order_id]["customer_id"] == 0

    @pytest.mark.asyncio
    async def test_removing_the_last_item_deletes_the_order(self, reconciler, commerce, request_context):
        order = commerce.seed_order([_tile_line()])

        result = await reconciler.remove(order["line_items"][0]["id"], request_context)

        assert result.order_deleted is True
        assert commerce.orders == {}
        assert result.to_dict() == {"removed_from_order_id": order["id"], "order_deleted": True}
        assert result.message == "Item removed from cart, order deleted"

    @pytest.mark.asyncio
    async def test_unknown_item_is_not_found(self, reconciler, commerce, request_context):
        commerce.seed_order([_tile_line()])
        with pytest.raises(NotFoundError):
            await reconciler.remove(424242, request_context)

    @pytest.mark.asyncio
    async def test_items_outside_pending_orders_are_not_found(self, reconciler, commerce, request_context):
        order = commerce.seed_order([_tile_line()], status="processing")
        with pytest.raises(NotFoundError):
            await reconciler.remove(order["line_items"][0]["id"], request_context)
