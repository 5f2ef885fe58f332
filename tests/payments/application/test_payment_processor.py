"""Tests for paying a pending order through the simulated gateway."""

import random
from datetime import UTC, datetime

import pytest
from payments.gateway.fake_adapter import SimulatedGateway
from payments.processing import CardDetails, PaymentProcessor
from shared.errors import NotFoundError, PaymentDeclinedError, ValidationError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _card(**overrides):
    values = {
        "card_number": "4242 4242 4242 4242",
        "card_holder": "Ada Lovelace",
        "expiry_month": "12",
        "expiry_year": "2030",
        "cvc": "123",
    }
    values.update(overrides)
    return CardDetails(**values)


@pytest.fixture()
def gateway():
    return SimulatedGateway(delay_seconds=0, decline_rate=0)


@pytest.fixture()
def processor(commerce, sessions, gateway):
    return PaymentProcessor(commerce, sessions, gateway, clock=lambda: NOW)


@pytest.fixture()
def order(commerce):
    return commerce.seed_order(
        [{"product_id": 812, "variation_id": 815, "quantity": 2, "price": "39.95", "subtotal": "79.90"}]
    )


class TestCardDetails:
    def test_last4_ignores_spaces(self):
        assert _card().last4 == "4242"

    def test_valid_card_passes(self):
        _card().validate(NOW)

    def test_incomplete_details(self):
        with pytest.raises(ValidationError) as exc:
            _card(cvc="").validate(NOW)
        assert exc.value.message == "Incomplete card details"

    def test_short_card_number(self):
        with pytest.raises(ValidationError) as exc:
            _card(card_number="4242 4242").validate(NOW)
        assert exc.value.message == "Invalid card number"

    def test_non_digit_card_number(self):
        with pytest.raises(ValidationError):
            _card(card_number="4242-4242-4242-4242").validate(NOW)

    def test_expired_card(self):
        with pytest.raises(ValidationError) as exc:
            _card(expiry_month="02", expiry_year="2026").validate(NOW)
        assert exc.value.message == "Card has expired"

    def test_card_expiring_this_month_is_accepted(self):
        _card(expiry_month="03", expiry_year="2026").validate(NOW)


class TestProcessPayment:
    @pytest.mark.asyncio
    async def test_card_payment_moves_the_order_to_processing(self, processor, commerce, order, gateway):
        summary = await processor.process(order["id"], "bank", card=_card())

        stored = commerce.orders[order["id"]]
        assert stored["status"] == "processing"
        assert stored["payment_method"] == "woocommerce_payments"
        assert stored["payment_method_title"] == "Credit / Debit Card"
        assert stored["set_paid"] is True
        assert stored["transaction_id"].startswith("sim_")
        assert stored["date_paid"] == NOW.isoformat()
        assert {"key": "_card_last4", "value": "4242"} in stored["meta_data"]
        assert {"key": "_payment_processor", "value": "simulated"} in stored["meta_data"]
        assert summary["status"] == "processing"
        assert summary["payment_method"] == "Credit / Debit Card"
        assert gateway.calls[0]["idempotency_key"] == f"order-{order['id']}"
        assert gateway.calls[0]["amount"] == 79.90

    @pytest.mark.asyncio
    async def test_wallet_payment_needs_no_card(self, processor, commerce, order):
        await processor.process(order["id"], "apple_pay")

        stored = commerce.orders[order["id"]]
        assert stored["payment_method"] == "apple_pay"
        assert {"key": "_card_last4", "value": "****"} in stored["meta_data"]

    @pytest.mark.asyncio
    async def test_session_is_released_after_payment(self, processor, sessions, order):
        await sessions.merge_cookies("sess-1", {"wc_cart_token": "A"})
        await sessions.bind_order("sess-1", order["id"])

        await processor.process(order["id"], "bank", card=_card(), session_id="sess-1")

        assert await sessions.get("sess-1") is None

    @pytest.mark.asyncio
    async def test_authenticated_payment_records_the_customer(self, processor, commerce, order):
        await processor.process(order["id"], "bank", card=_card(), customer_id=77)
        assert commerce.orders[order["id"]]["customer_id"] == 77

    @pytest.mark.asyncio
    async def test_card_payment_without_card_details(self, processor, order, gateway):
        with pytest.raises(ValidationError):
            await processor.process(order["id"], "bank")
        assert not gateway.calls

    @pytest.mark.asyncio
    async def test_unknown_order(self, processor):
        with pytest.raises(NotFoundError) as exc:
            await processor.process(999, "bank", card=_card())
        assert exc.value.message == "Order not found"

    @pytest.mark.asyncio
    async def test_order_that_is_not_pending(self, processor, commerce):
        paid = commerce.seed_order([], status="processing")
        with pytest.raises(ValidationError) as exc:
            await processor.process(paid["id"], "bank", card=_card())
        assert exc.value.message == "Order is already processing"


class TestDeclinedPayment:
    @pytest.mark.asyncio
    async def test_configured_failure_leaves_the_order_pending(self, processor, commerce, sessions, order, gateway):
        gateway.configure(should_succeed=False, failure_reason="Insufficient funds")
        await sessions.merge_cookies("sess-1", {"wc_cart_token": "A"})

        with pytest.raises(PaymentDeclinedError) as exc:
            await processor.process(order["id"], "bank", card=_card(), session_id="sess-1")

        assert exc.value.status_code == 402
        assert exc.value.error == "Insufficient funds"
        assert commerce.orders[order["id"]]["status"] == "pending"
        assert commerce.calls_to("update_order") == []
        assert await sessions.get("sess-1") is not None

    @pytest.mark.asyncio
    async def test_random_decline(self, commerce, sessions, order):
        gateway = SimulatedGateway(delay_seconds=0, decline_rate=1.0, rng=random.Random(7))
        processor = PaymentProcessor(commerce, sessions, gateway, clock=lambda: NOW)

        with pytest.raises(PaymentDeclinedError):
            await processor.process(order["id"], "bank", card=_card())


class TestSimulatedGateway:
    @pytest.mark.asyncio
    async def test_only_recent_charges_are_kept(self):
        from payments.gateway.fake_adapter import RECENT_CHARGES

        gateway = SimulatedGateway(delay_seconds=0, decline_rate=0)
        for n in range(RECENT_CHARGES + 5):
            await gateway.create_charge(10.0, "GBP", "card", "4242", f"order-{n}")

        assert len(gateway.calls) == RECENT_CHARGES
        assert gateway.calls[0]["idempotency_key"] == "order-5"
        assert gateway.calls[-1]["idempotency_key"] == f"order-{RECENT_CHARGES + 4}"
