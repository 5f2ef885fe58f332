"""Line items of cart orders: identity, construction and recomputation.

A cart entry lives upstream as a line item of a ``pending`` order. Only
three metadata keys are ours (``_m2_quantity``, ``_is_sample`` and
``sample_type``); every other key found on an upstream line item is dropped
whenever the gateway rewrites it.

Area quantities are kept to 3 decimal places and money to 2, both rounded
half-up. Two line items are the same cart entry when their merge keys
match: parent product id, variation id and sample flag. Two samples only
need the same parent product.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

AREA_KEY = "_m2_quantity"
SAMPLE_KEY = "_is_sample"
SAMPLE_TYPE_KEY = "sample_type"
ALLOWED_META_KEYS = frozenset({AREA_KEY, SAMPLE_KEY, SAMPLE_TYPE_KEY})

FREE_SAMPLE = "free-sample"
SAMPLE_SKU_MARKER = "SAMPLE"

AREA_PLACES = Decimal("0.001")
MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Decimal helpers
# ---------------------------------------------------------------------------
def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """Coerce an upstream number or numeric string; anything else is ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    return result if result.is_finite() else default


def quantize_area(value: Decimal) -> Decimal:
    return value.quantize(AREA_PLACES, rounding=ROUND_HALF_UP)


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def format_money(value: Any) -> str:
    return str(quantize_money(to_decimal(value)))


def format_area(value: Decimal) -> str:
    return str(quantize_area(value))


def priced_totals(unit_price: Decimal, area: Decimal, quantity: int) -> dict:
    """Unit price times area, or times the unit count when there is no area."""
    amount = format_money(unit_price * (area if area > 0 else Decimal(quantity)))
    return {"price": float(unit_price), "subtotal": amount, "total": amount}


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------
def is_truthy_sample(value: Any) -> bool:
    """``True``, ``1`` and ``"1"`` all flag a sample."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip() == "1"
    return False


def meta_value(item: dict, key: str) -> Any:
    for meta in item.get("meta_data") or []:
        if meta.get("key") == key:
            return meta.get("value")
    return None


def has_sample_flag(item: dict) -> bool:
    return any(
        meta.get("key") == SAMPLE_KEY and is_truthy_sample(meta.get("value")) for meta in item.get("meta_data") or []
    )


def area_quantity(item: dict) -> Decimal:
    return to_decimal(meta_value(item, AREA_KEY))


def filter_meta(meta_data: list[dict] | None, keep_ids: bool = False) -> list[dict]:
    """Keep only the allow-listed metadata keys.

    Upstream meta ids are only meaningful on the order they came from, so
    they are kept for in-place updates and dropped otherwise.
    """
    filtered = []
    for meta in meta_data or []:
        if meta.get("key") not in ALLOWED_META_KEYS:
            continue
        entry = {"key": meta["key"], "value": meta.get("value")}
        if keep_ids and meta.get("id"):
            entry = {"id": meta["id"], **entry}
        filtered.append(entry)
    return filtered


def _set_meta(meta_data: list[dict], key: str, value: Any) -> list[dict]:
    for meta in meta_data:
        if meta["key"] == key:
            meta["value"] = value
            return meta_data
    meta_data.append({"key": key, "value": value})
    return meta_data


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------
def _optional_id(value: Any) -> int | None:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed or None


@dataclass(frozen=True)
class MergeKey:
    product_id: int
    variation_id: int | None
    is_sample: bool

    def matches(self, other: "MergeKey") -> bool:
        if self.is_sample and other.is_sample:
            return self.product_id == other.product_id
        return self == other


def merge_key_of(item: dict) -> MergeKey:
    return MergeKey(
        product_id=int(item.get("product_id") or 0),
        variation_id=_optional_id(item.get("variation_id")),
        is_sample=has_sample_flag(item),
    )


def is_duplicate(a: dict, b: dict) -> bool:
    return merge_key_of(a).matches(merge_key_of(b))


def find_duplicate(orders: list[dict], key: MergeKey) -> tuple[dict, dict] | None:
    """First ``(order, line_item)`` across ``orders`` whose item matches ``key``."""
    for order in orders:
        for item in order.get("line_items") or []:
            if merge_key_of(item).matches(key):
                return order, item
    return None


# ---------------------------------------------------------------------------
# New entries
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SampleEntry:
    """A sample request: counted in units, never priced."""

    product_id: int
    variation_id: int | None
    quantity: int
    sample_type: str = FREE_SAMPLE

    @property
    def merge_key(self) -> MergeKey:
        return MergeKey(self.product_id, self.variation_id, True)

    @property
    def area_quantity(self) -> Decimal:
        return ZERO

    def to_line_item(self) -> dict:
        item: dict[str, Any] = {"product_id": self.product_id, "quantity": self.quantity}
        if self.variation_id:
            item["variation_id"] = self.variation_id
        item["meta_data"] = [
            {"key": SAMPLE_KEY, "value": "1"},
            {"key": SAMPLE_TYPE_KEY, "value": self.sample_type},
        ]
        return item


@dataclass(frozen=True)
class AreaEntry:
    """A regular entry, optionally measured in m² and priced per m²."""

    product_id: int
    variation_id: int | None
    quantity: int
    area_quantity: Decimal | None = None
    unit_price: Decimal | None = None

    @property
    def merge_key(self) -> MergeKey:
        return MergeKey(self.product_id, self.variation_id, False)

    def to_line_item(self) -> dict:
        item: dict[str, Any] = {"product_id": self.product_id, "quantity": self.quantity}
        if self.variation_id:
            item["variation_id"] = self.variation_id
        meta_data: list[dict] = []
        if self.area_quantity is not None:
            if self.unit_price:
                amount = format_money(self.unit_price * self.area_quantity)
                item.update(price=float(self.unit_price), subtotal=amount, total=amount)
            meta_data.append({"key": AREA_KEY, "value": format_area(self.area_quantity)})
        item["meta_data"] = meta_data
        return item


CartEntry = SampleEntry | AreaEntry


def build_entry(
    product_id: int,
    quantity: int,
    variation_id: int | None = None,
    area: Decimal | None = None,
    unit_price: Decimal | None = None,
    is_sample: bool = False,
    sku: str | None = None,
    sample_type: str | None = None,
) -> CartEntry:
    """Pick the entry variant for an add request.

    A SKU carrying the sample marker also makes a sample.
    """
    if is_sample or (sku and SAMPLE_SKU_MARKER in sku.upper()):
        return SampleEntry(
            product_id=product_id,
            variation_id=variation_id or None,
            quantity=quantity,
            sample_type=sample_type or FREE_SAMPLE,
        )
    return AreaEntry(
        product_id=product_id,
        variation_id=variation_id or None,
        quantity=quantity,
        area_quantity=quantize_area(area) if area is not None else None,
        unit_price=unit_price,
    )


# ---------------------------------------------------------------------------
# Rewriting existing items
# ---------------------------------------------------------------------------
def merged_line_item(existing: dict, entry: CartEntry) -> dict:
    """Fold ``entry`` into the matching ``existing`` line item.

    Quantities and areas add up. The unit price stays the one already on
    the existing item; only the multiplied totals move. Samples carry no
    price fields.
    """
    quantity = int(existing.get("quantity") or 0) + entry.quantity
    incoming_area = entry.area_quantity or ZERO
    area = quantize_area(area_quantity(existing) + incoming_area)

    meta_data = filter_meta(existing.get("meta_data"))
    if meta_value(existing, AREA_KEY) is not None or incoming_area > 0:
        _set_meta(meta_data, AREA_KEY, format_area(area))

    item: dict[str, Any] = {"product_id": entry.product_id, "quantity": quantity}
    if entry.variation_id:
        item["variation_id"] = entry.variation_id

    if isinstance(entry, SampleEntry):
        _set_meta(meta_data, SAMPLE_KEY, "1")
        if meta_value(existing, SAMPLE_TYPE_KEY) is None:
            _set_meta(meta_data, SAMPLE_TYPE_KEY, entry.sample_type)
    else:
        unit_price = to_decimal(existing.get("price"), default=None)
        if unit_price is not None:
            item.update(priced_totals(unit_price, area, quantity))

    item["meta_data"] = meta_data
    return item


def carry_line_item(item: dict) -> dict:
    """Copy an existing line item into a replacement order."""
    carried: dict[str, Any] = {
        "product_id": int(item.get("product_id") or 0),
        "quantity": int(item.get("quantity") or 0),
    }
    variation_id = _optional_id(item.get("variation_id"))
    if variation_id:
        carried["variation_id"] = variation_id
    if not has_sample_flag(item):
        if item.get("price") not in (None, ""):
            carried["price"] = float(to_decimal(item["price"]))
        for field in ("subtotal", "total"):
            if item.get(field) not in (None, ""):
                carried[field] = format_money(item[field])
    carried["meta_data"] = filter_meta(item.get("meta_data"))
    return carried
