"""Read-path view of cart line items.

The upstream recalculates line subtotals with its own pricing rules, so the
stored ``price`` of an area-priced item can disagree with what is charged.
The view treats the subtotal as ground truth and recovers the price per m²
from it. Deriving a view from a view gives the same view.
"""

from ordering.cart.line_items import (
    SAMPLE_SKU_MARKER,
    ZERO,
    area_quantity,
    has_sample_flag,
    quantize_money,
    to_decimal,
)

SAMPLE_NAME_MARKER = "Sample"


def is_sample_item(item: dict) -> bool:
    """Sample metadata, or a sample marker in the SKU or name.

    Some upstream update paths strip metadata, hence the textual fallback.
    """
    return (
        has_sample_flag(item)
        or SAMPLE_SKU_MARKER in (item.get("sku") or "")
        or SAMPLE_NAME_MARKER in (item.get("name") or "")
    )


def derive_view(item: dict) -> dict:
    sample = is_sample_item(item)
    area = area_quantity(item)
    quantity = int(item.get("quantity") or 0)
    subtotal = quantize_money(to_decimal(item.get("subtotal")))
    total = quantize_money(to_decimal(item.get("total")))

    if not sample and area > ZERO:
        display_quantity: int | float = float(area)
        display_price = quantize_money(subtotal / area)
    else:
        display_quantity = quantity
        display_price = quantize_money(to_decimal(item.get("price")))

    return {
        **item,
        "is_sample": sample,
        "m2_quantity": float(area),
        "display_quantity": display_quantity,
        "display_price": float(display_price),
        "price": float(display_price),
        "subtotal": str(subtotal),
        "total": str(total),
        "parent_name": (item.get("name") or "").split(" - ")[0],
    }


def cart_view(orders: list[dict]) -> list[dict]:
    """Flatten the line items of ``orders`` into display rows tagged with their order id."""
    rows = []
    for order in orders:
        for item in order.get("line_items") or []:
            rows.append({**derive_view(item), "order_id": order.get("id")})
    return rows
