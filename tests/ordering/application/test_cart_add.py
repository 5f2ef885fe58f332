"""Tests for adding entries to the cart-as-order representation."""

import asyncio
from decimal import Decimal

import pytest
from ordering.cart.line_items import AreaEntry, SampleEntry, meta_value
from ordering.cart.reconciliation import CartReconciler
from ordering.cart.repository import CartOrderRepository, RequestContext
from shared.errors import UpstreamError
from upstream.fake_adapter import FakeCommerce

PRICE_FIELDS = ("price", "subtotal", "total")


@pytest.fixture()
def reconciler(commerce, parents):
    return CartReconciler(CartOrderRepository(commerce, scan_limit=10), parents)


def _tile_line(quantity=2, area="1.500", price="20.00", subtotal="30.00", product_id=812, variation_id=815):
    return {
        "product_id": product_id,
        "variation_id": variation_id,
        "quantity": quantity,
        "price": price,
        "subtotal": subtotal,
        "total": subtotal,
        "meta_data": [{"key": "_m2_quantity", "value": area}],
    }


def _sample_line(product_id=812, variation_id=815):
    return {
        "product_id": product_id,
        "variation_id": variation_id,
        "quantity": 1,
        "meta_data": [{"key": "_is_sample", "value": "1"}, {"key": "sample_type", "value": "free-sample"}],
    }


def _pending(commerce):
    return [order for order in commerce.orders.values() if order["status"] == "pending"]


class TestNewCartOrder:
    @pytest.mark.asyncio
    async def test_first_add_creates_a_pending_order(self, reconciler, commerce, request_context):
        result = await reconciler.add(AreaEntry(812, 815, 12, Decimal("1.116"), Decimal("39.95")), request_context)

        assert list(commerce.orders) == [result.order_id]
        payload = commerce.calls_to("create_order")[0]
        assert payload["status"] == "pending"
        assert payload["created_via"] == "checkout"
        assert payload["payment_method"] == "bacs"
        assert payload["payment_method_title"] == "Direct Bank Transfer"
        assert payload["customer_ip_address"] == "203.0.113.7"
        assert payload["customer_user_agent"] == "pytest-agent"
        assert "customer_id" not in payload
        assert payload["line_items"][0]["subtotal"] == "44.58"

    @pytest.mark.asyncio
    async def test_authenticated_add_records_the_customer(self, reconciler, commerce):
        context = RequestContext(ip_address="203.0.113.7", user_agent="pytest-agent", customer_id=77)
        await reconciler.add(AreaEntry(812, None, 1), context)
        assert commerce.calls_to("create_order")[0]["customer_id"] == 77

    @pytest.mark.asyncio
    async def test_sample_add_sends_no_price_fields(self, reconciler, commerce, request_context):
        await reconciler.add(SampleEntry(812, 815, 1), request_context)
        line_item = commerce.calls_to("create_order")[0]["line_items"][0]
        assert not any(field in line_item for field in PRICE_FIELDS)
        assert meta_value(line_item, "_is_sample") == "1"
        assert meta_value(line_item, "sample_type") == "free-sample"

    @pytest.mark.asyncio
    async def test_result_carries_line_items_and_order_id(self, reconciler, request_context):
        result = await reconciler.add(AreaEntry(812, 815, 2), request_context)
        data = result.to_dict()
        assert data["order_id"] == result.order_id
        assert data["line_items"][0]["quantity"] == 2


class TestDuplicateMerge:
    @pytest.mark.asyncio
    async def test_repeated_add_merges_quantity_and_area(self, reconciler, commerce, request_context):
        original = commerce.seed_order([_tile_line()])

        result = await reconciler.add(
            AreaEntry(812, 815, 3, Decimal("0.750"), Decimal("25")), request_context, check_duplicates=True
        )

        assert result.order_id != original["id"]
        assert original["id"] not in commerce.orders
        [item] = commerce.orders[result.order_id]["line_items"]
        assert item["quantity"] == 5
        assert meta_value(item, "_m2_quantity") == "2.250"
        assert item["subtotal"] == "45.00"

    @pytest.mark.asyncio
    async def test_other_items_in_the_order_are_carried_over(self, reconciler, commerce, request_context):
        commerce.seed_order([_tile_line(), _tile_line(quantity=4, product_id=900, variation_id=901, area="0.744")])

        result = await reconciler.add(AreaEntry(812, 815, 1), request_context, check_duplicates=True)

        items = {item["product_id"]: item for item in commerce.orders[result.order_id]["line_items"]}
        assert items[812]["quantity"] == 3
        assert items[900]["quantity"] == 4
        assert meta_value(items[900], "_m2_quantity") == "0.744"
        assert items[900]["subtotal"] == "30.00"

    @pytest.mark.asyncio
    async def test_merge_drops_foreign_metadata(self, reconciler, commerce, request_context):
        line = _tile_line()
        line["meta_data"].append({"key": "_reduced_stock", "value": "2"})
        commerce.seed_order([line])

        await reconciler.add(AreaEntry(812, 815, 1), request_context, check_duplicates=True)

        merged = commerce.calls_to("create_order")[0]["line_items"][0]
        assert [meta["key"] for meta in merged["meta_data"]] == ["_m2_quantity"]

    @pytest.mark.asyncio
    async def test_samples_of_different_variations_merge_without_prices(self, reconciler, commerce, request_context):
        commerce.seed_order([_sample_line(variation_id=815)])

        result = await reconciler.add(SampleEntry(812, 816, 1), request_context, check_duplicates=True)

        merged = commerce.calls_to("create_order")[0]["line_items"][0]
        assert merged["quantity"] == 2
        assert not any(field in merged for field in PRICE_FIELDS)
        assert len(commerce.orders[result.order_id]["line_items"]) == 1

    @pytest.mark.asyncio
    async def test_sample_is_not_merged_into_a_regular_item(self, reconciler, commerce, request_context):
        commerce.seed_order([_tile_line()])

        result = await reconciler.add(SampleEntry(812, 815, 1), request_context, check_duplicates=True)

        items = commerce.orders[result.order_id]["line_items"]
        assert len(items) == 2
        assert [item["quantity"] for item in items] == [2, 1]

    @pytest.mark.asyncio
    async def test_failed_create_updates_the_original_in_place(self, reconciler, commerce, request_context):
        original = commerce.seed_order([_tile_line()])
        commerce.fail_next("create_order")

        result = await reconciler.add(AreaEntry(812, 815, 3), request_context, check_duplicates=True)

        assert result.order_id == original["id"]
        assert commerce.calls_to("delete_order") == []
        [item] = commerce.orders[original["id"]]["line_items"]
        assert item["quantity"] == 5

    @pytest.mark.asyncio
    async def test_failed_create_and_update_leave_the_original_untouched(self, reconciler, commerce, request_context):
        original = commerce.seed_order([_tile_line()])
        commerce.fail_next("create_order", status=503)
        commerce.fail_next("update_order", status=503)

        with pytest.raises(UpstreamError) as exc:
            await reconciler.add(AreaEntry(812, 815, 3), request_context, check_duplicates=True)

        assert exc.value.message == "Failed to add to cart"
        assert exc.value.upstream_status == 503
        fetched = await commerce.get_order(original["id"])
        assert fetched["line_items"][0]["quantity"] == 2
        assert meta_value(fetched["line_items"][0], "_m2_quantity") == "1.500"

    @pytest.mark.asyncio
    async def test_failed_delete_still_returns_the_new_order(self, reconciler, commerce, request_context):
        original = commerce.seed_order([_tile_line()])
        commerce.fail_next("delete_order")

        result = await reconciler.add(AreaEntry(812, 815, 1), request_context, check_duplicates=True)

        assert result.order_id != original["id"]
        assert original["id"] in commerce.orders
        assert result.line_items[0]["quantity"] == 3

    @pytest.mark.asyncio
    async def test_stale_duplicate_is_passed_over_for_the_newest(self, reconciler, commerce, request_context):
        stale = commerce.seed_order([_tile_line(quantity=1)])
        newest = commerce.seed_order([_tile_line(quantity=2)])

        result = await reconciler.add(AreaEntry(812, 815, 1), request_context, check_duplicates=True)

        assert newest["id"] not in commerce.orders
        assert stale["id"] in commerce.orders
        assert result.line_items[0]["quantity"] == 3


class TestPlacementWithoutDuplicate:
    @pytest.mark.asyncio
    async def test_appends_to_the_most_recent_pending_order(self, reconciler, commerce, request_context):
        commerce.seed_order([_tile_line(product_id=900, variation_id=901)])
        recent = commerce.seed_order([_tile_line(product_id=950, variation_id=951)])

        result = await reconciler.add(AreaEntry(812, 815, 2), request_context, check_duplicates=True)

        assert recent["id"] not in commerce.orders
        assert [item["product_id"] for item in result.line_items] == [950, 812]
        assert len(commerce.calls_to("list_orders")) == 1

    @pytest.mark.asyncio
    async def test_prefers_the_customers_own_order(self, reconciler, commerce):
        own = commerce.seed_order([_tile_line(product_id=900, variation_id=901)], customer_id=77)
        commerce.seed_order([_tile_line(product_id=950, variation_id=951)])
        context = RequestContext(customer_id=77)

        result = await reconciler.add(AreaEntry(812, 815, 2), context, check_duplicates=True)

        assert own["id"] not in commerce.orders
        assert [item["product_id"] for item in result.line_items] == [900, 812]
        assert commerce.orders[result.order_id]["customer_id"] == 77

    @pytest.mark.asyncio
    async def test_without_duplicate_check_a_new_order_is_created(self, reconciler, commerce, request_context):
        existing = commerce.seed_order([_tile_line()])

        result = await reconciler.add(AreaEntry(812, 815, 2), request_context)

        assert existing["id"] in commerce.orders
        assert len(commerce.orders[result.order_id]["line_items"]) == 1
        assert commerce.calls_to("list_orders") == []


class TestVariationResolution:
    @pytest.mark.asyncio
    async def test_variation_sent_as_product_is_keyed_on_its_parent(self, reconciler, commerce, request_context):
        commerce.add_product(815, name="Calacatta Gold - 305x305x10", price="39.95", parent_id=812)
        commerce.seed_order([_tile_line()])

        result = await reconciler.add(AreaEntry(815, 815, 1), request_context, check_duplicates=True)

        [item] = result.line_items
        assert item["product_id"] == 812
        assert item["quantity"] == 3

    @pytest.mark.asyncio
    async def test_failed_lookup_keeps_the_client_product_id(self, reconciler, commerce, request_context):
        result = await reconciler.add(AreaEntry(815, 815, 1), request_context)
        assert result.line_items[0]["product_id"] == 815

    @pytest.mark.asyncio
    async def test_parent_lookups_are_cached(self, reconciler, commerce, request_context):
        commerce.add_product(815, parent_id=812)

        await reconciler.add(AreaEntry(815, 815, 1), request_context)
        await reconciler.add(AreaEntry(815, 815, 1), request_context)

        assert commerce.calls_to("get_product") == [815]


class InterleavingCommerce(FakeCommerce):
    """Yields to the event loop after every listing so concurrent adds read the same state."""

    async def list_orders(self, **params):
        page = await super().list_orders(**params)
        await asyncio.sleep(0)
        return page


class TestConcurrentAdds:
    @pytest.mark.asyncio
    async def test_racing_adds_both_rebuild_the_same_order(self, parents, request_context):
        commerce = InterleavingCommerce()
        reconciler = CartReconciler(CartOrderRepository(commerce), parents)
        original = commerce.seed_order([_tile_line()])

        first, second = await asyncio.gather(
            reconciler.add(AreaEntry(812, 815, 3), request_context, check_duplicates=True),
            reconciler.add(AreaEntry(812, 815, 3), request_context, check_duplicates=True),
        )

        # Both replacements exist; the second delete of the original failed and was logged
        assert original["id"] not in commerce.orders
        assert {first.order_id, second.order_id} == {order["id"] for order in _pending(commerce)}
        assert first.line_items[0]["quantity"] == second.line_items[0]["quantity"] == 5
