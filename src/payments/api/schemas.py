"""Pydantic request/response schemas for the Payments API.

These are external contracts (anti-corruption layer), separate from the
processor's own card and charge types. Field names follow the storefront's
camelCase payment form.
"""

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class CardDetailsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_number: str = Field(default="", alias="cardNumber")
    card_holder: str = Field(default="", alias="cardHolder")
    expiry_month: str = Field(default="", alias="expiryMonth")
    expiry_year: str = Field(default="", alias="expiryYear")
    cvc: str = ""


class ProcessPaymentRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "orderId": 1042,
                    "paymentMethod": "bank",
                    "cardDetails": {
                        "cardNumber": "4242 4242 4242 4242",
                        "cardHolder": "Ada Lovelace",
                        "expiryMonth": "12",
                        "expiryYear": "2030",
                        "cvc": "123",
                    },
                }
            ]
        },
    )

    order_id: int = Field(gt=0, alias="orderId")
    payment_method: str = Field(min_length=1, alias="paymentMethod")
    card_details: CardDetailsSchema | None = Field(default=None, alias="cardDetails")


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str | None = None
    decline_rate: float | None = Field(default=None, ge=0, le=1)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PaidOrderSchema(BaseModel):
    id: int
    order_key: str | None = None
    status: str | None = None
    total: str | None = None
    currency: str | None = None
    date_paid: str | None = None
    payment_method: str | None = None


class PaymentResponse(BaseModel):
    success: bool = True
    message: str
    order: PaidOrderSchema


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    decline_rate: float
