"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
line items and entries the cart engine works with.
"""

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------
class Envelope(BaseModel):
    success: bool = True
    message: str
    data: Any = None


class OrderSummarySchema(BaseModel):
    id: int
    order_key: str | None = None
    status: str | None = None
    total: str | None = None
    currency: str | None = None


class OrderEnvelope(BaseModel):
    success: bool = True
    message: str
    order: OrderSummarySchema


# ---------------------------------------------------------------------------
# Cart-as-order Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: int = Field(gt=0)
    variation_id: int | None = Field(default=None, ge=0)
    quantity: int = Field(ge=1)
    m2_quantity: Decimal | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)
    is_sample: bool = False
    sample_type: Literal["free-sample", "full-size-sample"] | None = None
    sku: str | None = None
    check_duplicates: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": 812,
                    "variation_id": 815,
                    "quantity": 12,
                    "m2_quantity": 1.116,
                    "price": 39.95,
                    "check_duplicates": True,
                },
                {
                    "product_id": 812,
                    "quantity": 1,
                    "is_sample": True,
                    "check_duplicates": True,
                },
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    """Deltas added to the current quantity and area."""

    quantity: int
    m2_quantity: Decimal | None = None


class CalculateAreaPriceRequest(BaseModel):
    quantity: int = Field(ge=1)
    dimensions: str = Field(min_length=3)
    price_per_m2: Decimal = Field(gt=0)

    model_config = {
        "json_schema_extra": {"examples": [{"quantity": 10, "dimensions": "305x305x10", "price_per_m2": 45.5}]}
    }


# ---------------------------------------------------------------------------
# Store-Cart Request Schemas
# ---------------------------------------------------------------------------
class VariationAttributeSchema(BaseModel):
    attribute: str
    value: str


class StoreAddItemRequest(BaseModel):
    id: int = Field(gt=0)
    quantity: int = Field(ge=1)
    m2_quantity: Decimal | None = Field(default=None, ge=0)
    variation: list[VariationAttributeSchema] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": 815,
                    "quantity": 12,
                    "variation": [{"attribute": "pa_sizemm", "value": "305x305x10"}],
                }
            ]
        }
    }


class StoreUpdateItemRequest(BaseModel):
    key: str = Field(min_length=1)
    quantity: int = Field(ge=0)


class StoreRemoveItemRequest(BaseModel):
    key: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address_1: str | None = None
    address_2: str | None = None
    city: str | None = None
    state: str | None = None
    postcode: str | None = None
    country: str | None = None


class BillingAddressSchema(ShippingAddressSchema):
    email: str | None = None
    phone: str | None = None


class ShippingLineSchema(BaseModel):
    method_id: str
    method_title: str | None = None
    total: str | None = None
    instance_id: int | None = None


class CheckoutRequest(BaseModel):
    billing: BillingAddressSchema | None = None
    shipping: ShippingAddressSchema | None = None
    customer_note: str | None = None
    shipping_lines: list[ShippingLineSchema] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "billing": {
                        "first_name": "Ada",
                        "last_name": "Lovelace",
                        "address_1": "12 St James's Square",
                        "city": "London",
                        "postcode": "SW1Y 4JH",
                        "country": "GB",
                        "email": "ada@example.com",
                    },
                    "shipping_lines": [
                        {"method_id": "flat_rate", "method_title": "Flat rate", "total": "9.95", "instance_id": 3}
                    ],
                }
            ]
        }
    }
