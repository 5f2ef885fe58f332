"""Mapping Store-Cart snapshots and checkout fields onto Commerce order payloads."""

import asyncio
from decimal import Decimal

import structlog

from ordering.cart.line_items import format_money, to_decimal
from ordering.cart.variations import ParentResolver

logger = structlog.get_logger(__name__)

BILLING_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "address_1",
    "address_2",
    "city",
    "state",
    "postcode",
    "country",
    "email",
    "phone",
)
SHIPPING_FIELDS = BILLING_FIELDS[:-2]

# Store-Cart item data that survives onto the order line
ITEM_DATA_KEYS = frozenset({"Total m²", "Dimensions", "_m2_quantity"})


def address_block(fields: tuple[str, ...], source: dict) -> dict:
    """Every field present, missing ones as empty strings."""
    return {name: source.get(name) or "" for name in fields}


def shipping_lines_payload(lines: list[dict]) -> list[dict]:
    return [
        {
            "method_id": line.get("method_id"),
            "method_title": line.get("method_title"),
            "total": line.get("total") or "0",
            "instance_id": line.get("instance_id") or 0,
        }
        for line in lines
    ]


def order_fields(
    billing: dict | None = None,
    shipping: dict | None = None,
    customer_note: str | None = None,
    shipping_lines: list[dict] | None = None,
) -> dict:
    """Order fields for whichever blocks the caller supplied."""
    fields: dict = {}
    if billing is not None:
        fields["billing"] = address_block(BILLING_FIELDS, billing)
    if shipping is not None:
        fields["shipping"] = address_block(SHIPPING_FIELDS, shipping)
    if customer_note:
        fields["customer_note"] = customer_note
    if shipping_lines:
        fields["shipping_lines"] = shipping_lines_payload(shipping_lines)
    return fields


def minor_to_major(amount: object, minor_unit: int) -> Decimal:
    return to_decimal(amount) / (Decimal(10) ** minor_unit)


async def map_cart_item(item: dict, parents: ParentResolver) -> dict:
    """One Store-Cart item as a Commerce line item.

    Variations are reported by their own id; the parent comes from the
    item's extensions when present, otherwise from a product lookup. A
    variation whose parent cannot be found is ordered as a plain product.
    """
    prices = item.get("prices") or {}
    totals = item.get("totals") or {}
    minor_unit = int(prices.get("currency_minor_unit", 2))
    quantity = int(item.get("quantity") or 0)
    item_id = int(item["id"])

    if totals.get("line_subtotal") not in (None, ""):
        subtotal = minor_to_major(totals["line_subtotal"], minor_unit)
    else:
        subtotal = minor_to_major(prices.get("price"), minor_unit) * quantity
    if totals.get("line_total") not in (None, ""):
        total = minor_to_major(totals["line_total"], minor_unit)
    else:
        total = subtotal

    line_item: dict = {
        "product_id": item_id,
        "quantity": quantity,
        "subtotal": format_money(subtotal),
        "total": format_money(total),
    }

    variation = item.get("variation") or []
    if variation:
        parent_id = int((item.get("extensions") or {}).get("parent_id") or 0) or await parents.parent_of(item_id)
        if parent_id:
            line_item["product_id"] = parent_id
            line_item["variation_id"] = item_id
        else:
            logger.warning("No parent found for variation, ordering it as a product", product_id=item_id)
        line_item["variation"] = [
            {"attribute": attribute.get("attribute"), "value": attribute.get("value")} for attribute in variation
        ]

    meta_data = [
        {"key": data["key"], "value": data.get("value")}
        for data in item.get("item_data") or []
        if data.get("key") in ITEM_DATA_KEYS
    ]
    if meta_data:
        line_item["meta_data"] = meta_data
    return line_item


async def map_cart_items(items: list[dict], parents: ParentResolver) -> list[dict]:
    return list(await asyncio.gather(*(map_cart_item(item, parents) for item in items)))
