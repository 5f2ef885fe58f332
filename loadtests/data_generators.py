"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the gateway's request schemas
and use the exact field names the storefront sends. Product and variation
ids come from ``LOADTEST_PRODUCTS`` so the journeys can target a real
store's catalogue:

    LOADTEST_PRODUCTS="812:815,812:816,640:0"

Each entry is ``product_id:variation_id`` (``0`` for simple products).
"""

import os
import random
from datetime import UTC, datetime, timedelta

import jwt
from faker import Faker

fake = Faker("en_GB")

DEFAULT_PRODUCTS = "812:815,812:816,640:0"

TILE_SIZES = ["305x305x10", "600x600x20", "600x300x10", "400x400x12", "150x75x8"]


def catalogue() -> list[tuple[int, int]]:
    """``(product_id, variation_id)`` pairs the journeys pick from."""
    pairs = []
    for entry in os.getenv("LOADTEST_PRODUCTS", DEFAULT_PRODUCTS).split(","):
        product_id, _, variation_id = entry.strip().partition(":")
        pairs.append((int(product_id), int(variation_id or 0)))
    return pairs


def random_product() -> tuple[int, int]:
    return random.choice(catalogue())


# ---------- Legacy Cart ----------


def area_for(dimensions: str, quantity: int) -> float:
    """Area in m² covered by ``quantity`` tiles of ``dimensions`` (width x length in mm)."""
    width, length = (int(part) for part in dimensions.split("x")[:2])
    return round(width * length * quantity / 1_000_000, 3)


def add_to_cart_data(check_duplicates: bool = True) -> dict:
    """Generate an AddToCartRequest payload for a tile priced per m²."""
    product_id, variation_id = random_product()
    quantity = random.randint(1, 24)
    payload = {
        "product_id": product_id,
        "quantity": quantity,
        "m2_quantity": area_for(random.choice(TILE_SIZES), quantity),
        "price": round(random.uniform(19.95, 89.95), 2),
        "check_duplicates": check_duplicates,
    }
    if variation_id:
        payload["variation_id"] = variation_id
    return payload


def sample_data() -> dict:
    """Generate an AddToCartRequest payload for a free sample."""
    product_id, variation_id = random_product()
    payload = {
        "product_id": product_id,
        "quantity": 1,
        "is_sample": True,
        "sample_type": "free-sample",
        "check_duplicates": True,
    }
    if variation_id:
        payload["variation_id"] = variation_id
    return payload


def update_cart_item_data() -> dict:
    """Generate an UpdateCartItemRequest payload (quantity and area deltas)."""
    quantity = random.randint(1, 6)
    return {"quantity": quantity, "m2_quantity": area_for(random.choice(TILE_SIZES), quantity)}


def m2_price_data() -> dict:
    """Generate a CalculateAreaPriceRequest payload."""
    return {
        "quantity": random.randint(1, 40),
        "dimensions": random.choice(TILE_SIZES),
        "price_per_m2": round(random.uniform(19.95, 129.95), 2),
    }


# ---------- Store Cart ----------


def store_add_item_data() -> dict:
    """Generate a StoreAddItemRequest payload."""
    product_id, variation_id = random_product()
    quantity = random.randint(1, 24)
    size = random.choice(TILE_SIZES)
    payload = {
        "id": variation_id or product_id,
        "quantity": quantity,
        "m2_quantity": area_for(size, quantity),
    }
    if variation_id:
        payload["variation"] = [{"attribute": "pa_sizemm", "value": size}]
    return payload


# ---------- Checkout ----------


def address_data() -> dict:
    """Generate a UK shipping address matching ShippingAddressSchema."""
    return {
        "first_name": fake.first_name()[:50],
        "last_name": fake.last_name()[:50],
        "address_1": fake.street_address()[:100],
        "city": fake.city()[:50],
        "postcode": fake.postcode(),
        "country": "GB",
    }


def checkout_data() -> dict:
    """Generate a CheckoutRequest payload with billing, shipping and delivery."""
    shipping = address_data()
    billing = {**shipping, "email": fake.email(), "phone": fake.phone_number()[:20]}
    return {
        "billing": billing,
        "shipping": shipping,
        "customer_note": random.choice(["", "Leave with neighbour", "Call before delivery"]),
        "shipping_lines": [
            {
                "method_id": "flat_rate",
                "method_title": "Pallet delivery",
                "total": random.choice(["9.95", "29.95", "49.00"]),
            }
        ],
    }


# ---------- Payments ----------


def card_details() -> dict:
    """Generate card details with a future expiry date."""
    expiry = fake.future_date(end_date="+1500d")
    return {
        "cardNumber": "4242 4242 4242 4242",
        "cardHolder": fake.name(),
        "expiryMonth": f"{expiry.month:02d}",
        "expiryYear": str(expiry.year),
        "cvc": f"{random.randint(100, 999)}",
    }


def payment_data(order_id: int) -> dict:
    """Generate a ProcessPaymentRequest payload for ``order_id``."""
    method = random.choices(["bank", "paypal", "klarna"], weights=[7, 2, 1])[0]
    payload = {"orderId": order_id, "paymentMethod": method}
    if method == "bank":
        payload["cardDetails"] = card_details()
    return payload


# ---------- Account ----------


def bearer_token(customer_id: int) -> str:
    """Sign a short-lived token for ``customer_id`` with ``JWT_SECRET``."""
    claims = {"userId": customer_id, "exp": datetime.now(UTC) + timedelta(hours=1)}
    return jwt.encode(claims, os.getenv("JWT_SECRET", "dev-secret"), algorithm="HS256")


def customer_id() -> int:
    return random.randint(1, int(os.getenv("LOADTEST_CUSTOMERS", "50")))
