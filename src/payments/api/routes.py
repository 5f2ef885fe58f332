"""FastAPI routes for the Payments context: simulated payments."""

from fastapi import APIRouter, Depends

from ordering.api.dependencies import session_id_header
from payments.api.schemas import (
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    PaymentResponse,
    ProcessPaymentRequest,
)
from payments.gateway.fake_adapter import SimulatedGateway
from payments.processing import CardDetails, PaymentProcessor
from shared.auth import optional_customer_id
from shared.components import Components, get_components
from shared.errors import ForbiddenError, ValidationError

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(tags=["payments"])


@payment_router.post("/cart/process-payment", response_model=PaymentResponse)
async def process_payment(
    body: ProcessPaymentRequest,
    session_id: str | None = Depends(session_id_header),
    customer_id: int | None = Depends(optional_customer_id),
    components: Components = Depends(get_components),
) -> PaymentResponse:
    """Charge a pending order and move it to processing.

    The session named by X-Session-Id is released afterwards, cookies and
    bound order alike.
    """
    processor = PaymentProcessor(components.commerce, components.sessions, components.gateway)
    card = CardDetails(**body.card_details.model_dump()) if body.card_details else None
    order = await processor.process(
        order_id=body.order_id,
        payment_method=body.payment_method,
        card=card,
        session_id=session_id,
        customer_id=customer_id,
    )
    return PaymentResponse(message="Payment processed successfully", order=order)


@payment_router.post("/payments/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(
    body: ConfigureGatewayRequest,
    components: Components = Depends(get_components),
) -> GatewayConfigResponse:
    """Configure the SimulatedGateway behavior (non-production only).

    Toggles success/failure and the random decline rate for manual API
    testing.
    """
    if components.settings.is_production:
        raise ForbiddenError("Gateway configuration not available in production")

    gateway = components.gateway
    if not isinstance(gateway, SimulatedGateway):
        raise ValidationError(
            {"gateway": "Gateway configuration only available for SimulatedGateway"},
            message="Gateway configuration only available for SimulatedGateway",
        )

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        decline_rate=body.decline_rate,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        decline_rate=gateway.decline_rate,
    )
