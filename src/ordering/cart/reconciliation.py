"""Cart reconciliation: add, update and remove against pending orders.

The upstream has no cart resource, so a cart is one or more ``pending``
orders. Each mutation reads the current pending set, works out the line
items the cart should hold and converges the upstream to them:

- **add** merges into a matching line item (same merge key) when duplicate
  detection is asked for, otherwise appends to the customer's or most
  recent pending order, otherwise opens a new order. Merges and appends
  rebuild the order with replace-and-delete.
- **update** adds quantity/area deltas to the sole line item of an order
  and updates that order in place.
- **remove** rebuilds the order holding the item without it, or deletes
  the order when the item was its last.

Nothing here is serialised. Two adds racing for the same cart can both
rebuild the same order; both replacements get created, the second delete
fails and is logged, and one replacement is left unreferenced.
"""

from dataclasses import dataclass, replace
from decimal import Decimal

import structlog

from ordering.cart.line_items import (
    AREA_KEY,
    CartEntry,
    area_quantity,
    carry_line_item,
    filter_meta,
    find_duplicate,
    format_area,
    has_sample_flag,
    merged_line_item,
    meta_value,
    priced_totals,
    quantize_area,
    to_decimal,
)
from ordering.cart.repository import CartOrderRepository, RequestContext
from ordering.cart.variations import ParentResolver
from shared.errors import NotFoundError, UpstreamError, ValidationError, upstream_operation

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartMutation:
    order_id: int
    line_items: list[dict]

    @classmethod
    def from_order(cls, order: dict) -> "CartMutation":
        return cls(order_id=order["id"], line_items=order.get("line_items") or [])

    def to_dict(self) -> dict:
        return {"line_items": self.line_items, "order_id": self.order_id}


@dataclass(frozen=True)
class CartRemoval:
    removed_from: int
    new_order_id: int | None = None

    @property
    def order_deleted(self) -> bool:
        return self.new_order_id is None

    @property
    def message(self) -> str:
        return "Item removed from cart, order deleted" if self.order_deleted else "Item removed from cart"

    def to_dict(self) -> dict:
        data: dict = {"removed_from_order_id": self.removed_from, "order_deleted": self.order_deleted}
        if self.new_order_id is not None:
            data["new_order_id"] = self.new_order_id
        return data


class CartReconciler:
    def __init__(self, repository: CartOrderRepository, parents: ParentResolver) -> None:
        self.repository = repository
        self.parents = parents

    # -------------------------------------------------------------------
    # Add
    # -------------------------------------------------------------------
    async def add(self, entry: CartEntry, context: RequestContext, check_duplicates: bool = False) -> CartMutation:
        with upstream_operation("Failed to add to cart"):
            product_id = await self.parents.resolve(entry.product_id, entry.variation_id)
            entry = replace(entry, product_id=product_id)

            pending: list[dict] = []
            if check_duplicates:
                pending = await self.repository.pending_orders()
                logger.debug(
                    "Scanning pending orders for duplicates",
                    pending_count=len(pending),
                    merge_key=entry.merge_key,
                )
                match = find_duplicate(pending, entry.merge_key)
                if match is not None:
                    order, item = match
                    return await self._merge(order, item, entry, context)

            line_item = entry.to_line_item()
            target = self.repository.select_cart_order(pending, context.customer_id)
            if target is not None:
                line_items = [carry_line_item(item) for item in target.get("line_items") or []]
                new_order = await self.repository.replace_cart_order(target, [*line_items, line_item], context)
                logger.info("Item appended to cart order", old_order_id=target["id"], order_id=new_order["id"])
                return CartMutation.from_order(new_order)

            order = await self.repository.create_cart_order([line_item], context)
            return CartMutation.from_order(order)

    async def _merge(self, order: dict, existing: dict, entry: CartEntry, context: RequestContext) -> CartMutation:
        merged = merged_line_item(existing, entry)
        others = [carry_line_item(item) for item in order["line_items"] if item["id"] != existing["id"]]
        logger.info(
            "Merging duplicate cart entry",
            order_id=order["id"],
            item_id=existing["id"],
            quantity=merged["quantity"],
            m2_quantity=meta_value(merged, AREA_KEY),
        )
        try:
            new_order = await self.repository.replace_cart_order(order, [*others, merged], context)
        except UpstreamError as exc:
            logger.warning(
                "Replacement order not created, updating original in place",
                order_id=order["id"],
                upstream_status=exc.upstream_status,
            )
            updated = await self.repository.update_line_items(order["id"], [{"id": existing["id"], **merged}])
            return CartMutation.from_order(updated)
        return CartMutation.from_order(new_order)

    # -------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------
    async def update(self, order_id: int, quantity: int, area: Decimal | None = None) -> CartMutation:
        """Add ``quantity`` (and ``area``) to the sole line item of ``order_id``."""
        with upstream_operation("Failed to update cart item"):
            order = await self.repository.get_cart_order(order_id)
            items = order.get("line_items") or []
            if not items:
                raise NotFoundError("Item not found in cart")
            existing = items[0]

            new_quantity = int(existing.get("quantity") or 0) + quantity
            if new_quantity < 1:
                raise ValidationError({"quantity": f"Resulting quantity must be at least 1, got {new_quantity}"})

            meta_data = filter_meta(existing.get("meta_data"), keep_ids=True)
            new_area = area_quantity(existing)
            if area is not None:
                new_area = quantize_area(new_area + area)
                area_meta = next((meta for meta in meta_data if meta["key"] == AREA_KEY), None)
                if area_meta is None:
                    meta_data.append({"key": AREA_KEY, "value": format_area(new_area)})
                else:
                    area_meta["value"] = format_area(new_area)

            line_item = {"id": existing["id"], "product_id": existing.get("product_id"), "quantity": new_quantity}
            if existing.get("variation_id"):
                line_item["variation_id"] = existing["variation_id"]
            unit_price = to_decimal(existing.get("price"), default=None)
            if not has_sample_flag(existing) and unit_price is not None:
                line_item.update(priced_totals(unit_price, new_area, new_quantity))
            line_item["meta_data"] = meta_data

            updated = await self.repository.update_line_items(order_id, [line_item])
            return CartMutation.from_order(updated)

    # -------------------------------------------------------------------
    # Remove
    # -------------------------------------------------------------------
    async def remove(self, item_id: int, context: RequestContext) -> CartRemoval:
        with upstream_operation("Failed to remove item from cart"):
            found = await self.repository.find_order_containing(item_id)
            if found is None:
                logger.info("Item not found in any pending order", item_id=item_id)
                raise NotFoundError("Item not found in cart")
            order, _ = found

            remaining = [item for item in order["line_items"] if item.get("id") != item_id]
            if not remaining:
                await self.repository.delete_cart_order(order["id"])
                return CartRemoval(removed_from=order["id"])

            new_order = await self.repository.replace_cart_order(
                order,
                [carry_line_item(item) for item in remaining],
                context,
                customer_id=order.get("customer_id") or None,
                preserve_customer=True,
            )
            return CartRemoval(removed_from=order["id"], new_order_id=new_order["id"])
