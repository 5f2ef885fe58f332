"""Cart load test scenarios.

Two stateful SequentialTaskSet journeys: the legacy cart-as-order flow,
where every add rewrites a pending order upstream, and the Store API cart
driven through the session registry.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    add_to_cart_data,
    m2_price_data,
    sample_data,
    store_add_item_data,
    update_cart_item_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CartState, StoreCartState


class LegacyCartJourney(SequentialTaskSet):
    """Price a tile -> Add -> Re-add (merge) -> Add sample -> View -> Update -> Remove.

    Models a visitor measuring a floor, adding tiles twice and a sample,
    then trimming the cart. Each add replaces the pending order upstream,
    so this journey puts the most write pressure on the Commerce API.
    """

    def on_start(self):
        self.state = CartState()

    @task
    def calculate_m2_price(self):
        with self.client.post(
            "/cart/calculate-m2-price",
            json=m2_price_data(),
            catch_response=True,
            name="POST /cart/calculate-m2-price",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"m² price failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def add_tiles(self):
        payload = add_to_cart_data()
        self.last_added = payload
        with self.client.post("/cart/add", json=payload, catch_response=True, name="POST /cart/add") as resp:
            if resp.status_code == 200:
                self.state.order_id = resp.json()["data"]["order_id"]
                self.state.item_count += 1
            else:
                resp.failure(f"Add to cart failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def add_same_tiles_again(self):
        payload = {**self.last_added, "quantity": random.randint(1, 6), "m2_quantity": 0.5}
        with self.client.post("/cart/add", json=payload, catch_response=True, name="POST /cart/add [merge]") as resp:
            if resp.status_code == 200:
                self.state.order_id = resp.json()["data"]["order_id"]
            else:
                resp.failure(f"Merge add failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def add_sample(self):
        with self.client.post(
            "/cart/add",
            json=sample_data(),
            catch_response=True,
            name="POST /cart/add [sample]",
        ) as resp:
            if resp.status_code == 200:
                self.state.order_id = resp.json()["data"]["order_id"]
                self.state.item_count += 1
            else:
                resp.failure(f"Add sample failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def view_cart(self):
        with self.client.get("/cart", catch_response=True, name="GET /cart") as resp:
            if resp.status_code == 200:
                self.state.item_ids = [row["id"] for row in resp.json()["data"]["line_items"]]
            else:
                resp.failure(f"View cart failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def update_quantity(self):
        if self.state.order_id is None:
            return
        with self.client.put(
            f"/cart/{self.state.order_id}",
            json=update_cart_item_data(),
            catch_response=True,
            name="PUT /cart/{id}",
        ) as resp:
            # Orders holding several lines reject in-place updates
            if resp.status_code in (200, 400):
                resp.success()
            else:
                resp.failure(f"Update failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def remove_item(self):
        if not self.state.item_ids:
            self.interrupt()
        item_id = random.choice(self.state.item_ids)
        with self.client.delete(
            f"/cart/{item_id}",
            catch_response=True,
            name="DELETE /cart/{id}",
        ) as resp:
            # Another user may have rewritten the order holding the item
            if resp.status_code in (200, 404):
                resp.success()
            else:
                resp.failure(f"Remove failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class StoreCartJourney(SequentialTaskSet):
    """Nonce -> Add item x2 -> View -> Update quantity -> Remove -> Clear.

    Exercises the session registry: every call carries the X-Session-Id the
    first response issued, so the gateway replays that visitor's cookies.
    """

    def on_start(self):
        self.state = StoreCartState()

    @task
    def issue_nonce(self):
        with self.client.get("/store/cart/nonce", catch_response=True, name="GET /store/cart/nonce") as resp:
            if resp.status_code == 200:
                self.state.absorb(resp.json()["data"])
            else:
                resp.failure(f"Nonce failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def _add_item(self):
        with self.client.post(
            "/store/cart/add-item",
            json=store_add_item_data(),
            headers=self.state.headers(),
            catch_response=True,
            name="POST /store/cart/add-item",
        ) as resp:
            if resp.status_code == 200:
                data = resp.json()["data"]
                self.state.absorb(data)
                self.state.item_keys = [item["key"] for item in data["cart"].get("items", [])]
            else:
                resp.failure(f"Store add failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def add_item_1(self):
        self._add_item()

    @task
    def add_item_2(self):
        self._add_item()

    @task
    def view_cart(self):
        with self.client.get(
            "/store/cart",
            headers=self.state.headers(),
            catch_response=True,
            name="GET /store/cart",
        ) as resp:
            if resp.status_code == 200:
                self.state.absorb(resp.json()["data"])
            else:
                resp.failure(f"Store view failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def update_item(self):
        if not self.state.item_keys:
            return
        with self.client.post(
            "/store/cart/update-item",
            json={"key": self.state.item_keys[0], "quantity": random.randint(1, 10)},
            headers=self.state.headers(),
            catch_response=True,
            name="POST /store/cart/update-item",
        ) as resp:
            if resp.status_code == 200:
                self.state.absorb(resp.json()["data"])
            else:
                resp.failure(f"Store update failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def remove_item(self):
        if not self.state.item_keys:
            return
        with self.client.post(
            "/store/cart/remove-item",
            json={"key": self.state.item_keys.pop()},
            headers=self.state.headers(),
            catch_response=True,
            name="POST /store/cart/remove-item",
        ) as resp:
            if resp.status_code == 200:
                self.state.absorb(resp.json()["data"])
            else:
                resp.failure(f"Store remove failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def clear_cart(self):
        with self.client.delete(
            "/store/cart",
            headers=self.state.headers(),
            catch_response=True,
            name="DELETE /store/cart",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Store clear failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CartUser(HttpUser):
    """Standalone cart load: both cart flows, weighted toward the Store API."""

    wait_time = between(0.5, 2.0)
    tasks = {StoreCartJourney: 3, LegacyCartJourney: 1}
