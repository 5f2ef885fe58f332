"""Area (m²) arithmetic for tile sizes given in millimetres.

Sizes come as ``WIDTHxHEIGHT`` or ``WIDTHxHEIGHTxDEPTH`` strings
(``"305x305x10"``); only width and height count towards the area.
"""

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ordering.cart.line_items import quantize_area, quantize_money
from shared.errors import ValidationError

MM2_PER_M2 = Decimal(1_000_000)
SIZE_ATTRIBUTE = "pa_sizemm"


def parse_dimensions(dimensions: str) -> tuple[Decimal, Decimal]:
    parts = [part.strip() for part in (dimensions or "").lower().split("x")]
    if len(parts) < 2:
        raise ValidationError(
            {"dimensions": 'Invalid dimensions format. Expected "widthxheightxdepth" (e.g. "305x305x10")'}
        )
    try:
        width, height = Decimal(parts[0]), Decimal(parts[1])
    except InvalidOperation as exc:
        raise ValidationError({"dimensions": f"Dimensions must be numeric, got {dimensions!r}"}) from exc
    if width <= 0 or height <= 0:
        raise ValidationError({"dimensions": "Width and height must be positive"})
    return width, height


def area_per_unit(dimensions: str) -> Decimal:
    width, height = parse_dimensions(dimensions)
    return width * height / MM2_PER_M2


def area_for(dimensions: str, quantity: int) -> Decimal:
    """Total m² for ``quantity`` tiles of the given size, to 3 decimal places."""
    return quantize_area(area_per_unit(dimensions) * quantity)


def size_attribute(variation: list[dict] | None) -> str | None:
    """The size value among variation attributes (``pa_sizemm`` or any ``*size*`` attribute)."""
    for attribute in variation or []:
        name = str(attribute.get("attribute") or "")
        if name == SIZE_ATTRIBUTE or "size" in name.lower():
            return attribute.get("value") or None
    return None


@dataclass(frozen=True)
class AreaPrice:
    quantity: int
    dimensions: str
    m2_per_tile: float
    total_m2: float
    price_per_m2: float
    total_price: float
    currency: str

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_area_price(quantity: int, dimensions: str, price_per_m2: Decimal, currency: str) -> AreaPrice:
    per_tile = area_per_unit(dimensions)
    total_m2 = per_tile * quantity
    return AreaPrice(
        quantity=quantity,
        dimensions=dimensions,
        m2_per_tile=float(per_tile.quantize(Decimal("0.000001"), rounding=ROUND_HALF_UP)),
        total_m2=float(total_m2.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)),
        price_per_m2=float(price_per_m2),
        total_price=float(quantize_money(total_m2 * price_per_m2)),
        currency=currency,
    )
